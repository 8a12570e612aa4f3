"""API routes package."""

from studygroup.api.routes import ai, auth, classes, documents, enrollments

__all__ = [
    "ai",
    "auth",
    "classes",
    "documents",
    "enrollments",
]
