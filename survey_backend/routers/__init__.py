"""API routers."""
from survey_backend.routers import health, surveys

__all__ = [
    "health",
    "surveys",
]
