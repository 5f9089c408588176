"""FastAPI application."""

from fastapi import FastAPI

from backend.app.api.errors import register_exception_handlers
from backend.app.api.routes.conversations import router as conversations_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.knowledge_base import router as knowledge_base_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.organizations import invitations_router
from backend.app.api.routes.organizations import router as organizations_router
from backend.app.api.routes.platforms import router as platforms_router
from backend.app.config import get_settings
from backend.app.utils.logging import configure_logging

configure_logging(get_settings().log_level)

app = FastAPI(title="Dana AI API", version="0.1.0")

register_exception_handlers(app)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(organizations_router)
app.include_router(invitations_router)
app.include_router(platforms_router)
app.include_router(conversations_router)
app.include_router(knowledge_base_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Dana AI API", "version": "0.1.0"}
