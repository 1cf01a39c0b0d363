from __future__ import annotations

from collections.abc import Generator
from typing import Any

from customs_core.liquidation.pipeline import LiquidationService
from customs_core.packs.loader import ReferencePack, load_reference_pack
from customs_core.review.workflow import ManualReviewWorkflow
from fastapi import Request
from sqlalchemy.orm import Session

from customs_api.db.models import Base
from customs_api.db.session import create_engine_from_url, create_sessionmaker
from customs_api.queue.rq import create_queue
from customs_api.settings import Settings, get_settings


def init_app_state(app) -> None:
    settings = get_settings()
    engine = create_engine_from_url(settings.database_url)
    SessionLocal = create_sessionmaker(engine)
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
    pack = load_reference_pack(settings.pack_name, settings.packs_root)
    app.state.settings = settings
    app.state.engine = engine
    app.state.SessionLocal = SessionLocal
    app.state.queue = create_queue(settings.redis_url)
    app.state.pack = pack
    app.state.liquidation_service = LiquidationService(pack)
    app.state.review_workflow = ManualReviewWorkflow.from_pack(pack)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    session_local = request.app.state.SessionLocal
    db = session_local()
    try:
        yield db
    finally:
        db.close()


def get_queue(request: Request) -> Any:
    return request.app.state.queue


def get_pack(request: Request) -> ReferencePack:
    return request.app.state.pack


def get_liquidation_service(request: Request) -> LiquidationService:
    return request.app.state.liquidation_service


def get_review_workflow(request: Request) -> ManualReviewWorkflow:
    return request.app.state.review_workflow
