"""API package: provides FastAPI dependencies and route definitions for the application."""

from .routes import router  # noqa: F401
