"""Document store collection names."""

QUIZZES = "quizzes"
RESULTS = "quizResults"
USERS = "users"
USER_PREFERENCES = "userPreferences"
CATEGORIES = "categories"
ACHIEVEMENTS = "achievements"
