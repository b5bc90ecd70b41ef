"""Primary API router definition."""

from fastapi import APIRouter

from . import sessions

api_router = APIRouter()

api_router.include_router(sessions.router)


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}
