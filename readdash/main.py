import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from readdash.routes import admin, progress, quiz, users
from readdash.db.base import Base
from readdash.db.sessions import engine
from readdash.core.config import settings

# Import all models to ensure they're registered with Base
import readdash.models

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Reading comprehension quizzes, grading, review and learner progress"
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router)
app.include_router(quiz.router)
app.include_router(progress.router)
app.include_router(admin.router)


@app.on_event("startup")
def startup_event():
    # Create the documents table
    Base.metadata.create_all(bind=engine)
    logger.info("%s v%s starting", settings.APP_NAME, settings.APP_VERSION)
    logger.info("Result key scheme: %s, fill-blanks grading: %s",
                settings.RESULT_KEY_SCHEME, settings.FILL_BLANKS_GRADING)


@app.get("/health")
def health():
    return {"status": "ok"}
