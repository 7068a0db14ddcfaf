from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from .cleaner import NoteCleaner, build_cleaner
from .scheduler import CleanupScheduler
from .settings import OptionsStore, Settings

logger = logging.getLogger(__name__)


class OptionsPatch(BaseModel):
    folder: str | None = None
    days_after: int | None = Field(default=None, ge=0)
    remove_buttons: bool | None = None
    remove_task_queries: bool | None = None
    remove_empty_sections: bool | None = None


def create_app(
    settings: Settings,
    cleaner: NoteCleaner | None = None,
    options_store: OptionsStore | None = None,
) -> FastAPI:
    if cleaner is None or options_store is None:
        built_cleaner, built_store = build_cleaner(settings, notify=lambda m: logger.info("Notice: %s", m))
        cleaner = cleaner or built_cleaner
        options_store = options_store or built_store

    scheduler = CleanupScheduler(cleaner, interval_hours=settings.CLEAN_INTERVAL_HOURS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.CLEAN_SCHEDULE_ENABLED:
            scheduler.start()
        try:
            yield
        finally:
            scheduler.stop()

    app = FastAPI(title="clean_notes API", version="0.1.0", lifespan=lifespan)
    app.state.cleaner = cleaner
    app.state.scheduler = scheduler

    if settings.CLEAN_API_CORS_ALLOW_ALL:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _options_payload() -> dict:
        opts = options_store.load()
        return {
            "options": opts.model_dump(),
            "resolved_folder": cleaner.resolve_folder_path(opts),
        }

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/")
    def root():
        return {
            "service": "clean_notes API",
            "ok": True,
            "endpoints": {
                "health": "/health",
                "options": "/options",
                "clean": "POST /clean?dry_run=false",
                "docs": "/docs",
            },
        }

    @app.get("/options")
    def get_options() -> dict:
        return _options_payload()

    @app.put("/options")
    def put_options(patch: OptionsPatch = Body(...)) -> dict:
        try:
            options_store.update(**patch.model_dump(exclude_unset=True))
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False))
        return _options_payload()

    @app.post("/clean")
    def clean(dry_run: bool = False) -> dict:
        report = cleaner.run(dry_run=dry_run)
        if report is None:
            return {"ok": False, "skipped": True, "report": None}
        return {"ok": not report.aborted, "skipped": False, "report": asdict(report)}

    return app
