"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import health, schedule
from .config import settings


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "health": f"{settings.api_prefix}/health",
            "solve": f"{settings.api_prefix}/schedule/solve",
            "daily_run": f"{settings.scheduled_time:%H:%M}" if settings.schedule_enabled else None,
            "docs": "/docs",
        }

    for module in (health, schedule):
        app.include_router(module.router, prefix=settings.api_prefix)
    return app


app = create_app()
