"""Administrator routes: quiz authoring, categories, users and AI generation."""
from typing import Any, Dict, List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import Field

from readdash.core.exceptions import ReadDashError, to_http_exception
from readdash.core.security import require_admin
from readdash.db.store import DocumentStore, get_store
from readdash.models.base import CamelModel
from readdash.models.components import Component
from readdash.models.quiz import Quiz, QuizMetadata
from readdash.models.result import QuizResult
from readdash.models.user import UserProfile
from readdash.services.attempts import AttemptService
from readdash.services.openai_service import GeneratedQuiz, OpenAIService, generated_to_components
from readdash.services.progress import Achievement, ProgressService
from readdash.services.quiz_builder import QuizDocument
from readdash.services.quizzes import QuizService
from readdash.services.users import CategoryService, UserService, UserUpdate


router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def get_generation_service() -> OpenAIService:
    return OpenAIService()


# Request/Response schemas
class SaveQuizRequest(QuizMetadata):
    components: List[Component]


class SaveQuizResponse(CamelModel):
    quiz: Quiz
    warnings: List[str] = Field(default_factory=list)


class EditQuizResponse(QuizMetadata):
    id: str
    components: List[Component]


class BuilderRequest(CamelModel):
    components: List[Component] = Field(default_factory=list)
    action: Literal["add", "update", "delete", "move"]
    type: Optional[str] = None
    component_id: Optional[str] = None
    patch: Dict[str, Any] = Field(default_factory=dict)
    direction: Optional[Literal["up", "down"]] = None


class BuilderResponse(CamelModel):
    components: List[Component]


class CategoryRequest(CamelModel):
    name: str


class UserDetailResponse(CamelModel):
    user: UserProfile
    recent_results: List[QuizResult]
    achievements: List[Achievement]


class ResetProgressRequest(CamelModel):
    quiz_id: Optional[str] = None


class ResetProgressResponse(CamelModel):
    deleted: int


class GenerateQuizRequest(CamelModel):
    reading_level: str
    category: str
    keywords: Optional[str] = None
    question_count: int = Field(default=5, ge=1, le=10)


class GenerateQuizResponse(CamelModel):
    generated: GeneratedQuiz
    components: List[Component]


# Quizzes

@router.get("/quizzes", response_model=List[Quiz])
def list_all_quizzes(store: DocumentStore = Depends(get_store)):
    """List every quiz, published or not, with answer keys."""
    return QuizService(store).list_quizzes(published_only=False)


@router.post("/quizzes", response_model=SaveQuizResponse, status_code=status.HTTP_201_CREATED)
def create_quiz(request: SaveQuizRequest, store: DocumentStore = Depends(get_store)):
    """
    Save a new quiz from authored components.

    - Validates title, passage, questions and answer keys
    - Stores flattened components and normalized questions in one write
    - Returns non-fatal warnings alongside the stored quiz

    Raises:
        HTTPException 400: Validation failed, nothing was stored
    """
    metadata = QuizMetadata.model_validate(request.model_dump(exclude={"components"}))
    try:
        saved = QuizService(store).save_quiz(metadata, request.components)
    except ReadDashError as e:
        raise to_http_exception(e)
    return SaveQuizResponse(quiz=saved.quiz, warnings=saved.warnings)


@router.get("/quizzes/{quiz_id}/edit", response_model=EditQuizResponse)
def load_quiz_for_edit(quiz_id: str, store: DocumentStore = Depends(get_store)):
    """Load a stored quiz back into authoring components."""
    quizzes = QuizService(store)
    try:
        quiz = quizzes.get_quiz(quiz_id)
        components = quizzes.load_for_edit(quiz_id)
    except ReadDashError as e:
        raise to_http_exception(e)
    return EditQuizResponse(
        id=quiz_id,
        components=components,
        **quiz.metadata.model_dump(),
    )


@router.put("/quizzes/{quiz_id}", response_model=SaveQuizResponse)
def update_quiz(quiz_id: str, request: SaveQuizRequest, store: DocumentStore = Depends(get_store)):
    """
    Replace a quiz's metadata, components and questions.

    Raises:
        HTTPException 404: Quiz not found
        HTTPException 400: Validation failed, the stored quiz is unchanged
    """
    metadata = QuizMetadata.model_validate(request.model_dump(exclude={"components"}))
    try:
        saved = QuizService(store).update_quiz(quiz_id, metadata, request.components)
    except ReadDashError as e:
        raise to_http_exception(e)
    return SaveQuizResponse(quiz=saved.quiz, warnings=saved.warnings)


@router.delete("/quizzes/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quiz(quiz_id: str, store: DocumentStore = Depends(get_store)):
    """Delete a quiz. Existing results are kept."""
    try:
        QuizService(store).delete_quiz(quiz_id)
    except ReadDashError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/builder", response_model=BuilderResponse)
def apply_builder_action(request: BuilderRequest):
    """
    Apply one editing action to an in-progress component list.

    Actions: add (by type), update (component_id + patch),
    delete (component_id), move (component_id + direction).
    """
    document = QuizDocument(request.components)
    try:
        if request.action == "add":
            document.add_component(request.type or "")
        elif request.action == "update":
            document.update_component(request.component_id or "", request.patch)
        elif request.action == "delete":
            document.delete_component(request.component_id or "")
        else:
            document.move_component(request.component_id or "", request.direction or "")
    except ReadDashError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return BuilderResponse(components=document.components)


# Categories

@router.get("/categories", response_model=List[str])
def list_categories(store: DocumentStore = Depends(get_store)):
    """List quiz categories, seeding the defaults on first use."""
    return CategoryService(store).list_categories()


@router.post("/categories", response_model=List[str], status_code=status.HTTP_201_CREATED)
def add_category(request: CategoryRequest, store: DocumentStore = Depends(get_store)):
    """Add a category; empty and duplicate names are rejected."""
    try:
        return CategoryService(store).add_category(request.name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# Users

@router.get("/users", response_model=List[UserProfile])
def list_users(store: DocumentStore = Depends(get_store)):
    """List all users."""
    return UserService(store).list_users()


@router.get("/users/{uid}", response_model=UserDetailResponse)
def view_user(uid: str, store: DocumentStore = Depends(get_store)):
    """A user's profile with their 10 most recent results and earned achievements."""
    try:
        user = UserService(store).get_user(uid)
    except ReadDashError as e:
        raise to_http_exception(e)
    progress = ProgressService(store)
    return UserDetailResponse(
        user=user,
        recent_results=progress.user_results(uid)[:10],
        achievements=progress.earned_achievements(uid),
    )


@router.patch("/users/{uid}", response_model=UserProfile)
def edit_user(uid: str, request: UserUpdate, store: DocumentStore = Depends(get_store)):
    """Edit display name, role, reading level or knowledge points."""
    try:
        return UserService(store).update_user(uid, request)
    except ReadDashError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/users/{uid}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(uid: str, store: DocumentStore = Depends(get_store)):
    """Delete a user with their results, achievements and preferences."""
    try:
        UserService(store).delete_user(uid)
    except ReadDashError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/users/{uid}/reset", response_model=ResetProgressResponse)
def reset_user_progress(
    uid: str,
    request: ResetProgressRequest,
    store: DocumentStore = Depends(get_store)
):
    """Delete a user's results (optionally for one quiz) and zero their points."""
    try:
        UserService(store).get_user(uid)
    except ReadDashError as e:
        raise to_http_exception(e)
    deleted = AttemptService(store).reset(uid, quiz_id=request.quiz_id, zero_points=True)
    return ResetProgressResponse(deleted=deleted)


# AI generation

@router.post("/generate-quiz", response_model=GenerateQuizResponse)
def generate_quiz(
    request: GenerateQuizRequest,
    generator: OpenAIService = Depends(get_generation_service)
):
    """
    Generate a reading passage and multiple-choice questions with OpenAI.

    The generated quiz is returned as editable components and is not saved.

    Raises:
        HTTPException 502: Generation failed
    """
    try:
        generated = generator.generate_quiz(
            reading_level=request.reading_level,
            category=request.category,
            keywords=request.keywords,
            question_count=request.question_count,
        )
    except ReadDashError as e:
        raise to_http_exception(e)
    return GenerateQuizResponse(generated=generated, components=generated_to_components(generated))
