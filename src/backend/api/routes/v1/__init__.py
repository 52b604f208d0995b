"""
API v1 Router - Aggregates all v1 endpoints.

Usage in main.py:
    from api.routes.v1 import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")
"""

from fastapi import APIRouter

from api.routes.v1 import agents, chat, health, realtime_sessions, vector_stores

# Create the v1 API router
router = APIRouter()

router.include_router(
    health.router,
    tags=["Health"],
)

# Supervisor and sub-agents
router.include_router(
    agents.router,
    prefix="/agents",
    tags=["Agents"],
)

# Knowledge bases for the RAG agent
router.include_router(
    vector_stores.router,
    prefix="/vector-stores",
    tags=["Vector Stores"],
)

# Direct model calls outside the supervisor
router.include_router(
    chat.router,
    prefix="/chat",
    tags=["Chat"],
)

# Browser voice sessions
router.include_router(
    realtime_sessions.router,
    prefix="/realtime",
    tags=["Realtime"],
)

__all__ = ["router"]
