from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from customs_api.deps import init_app_state
from customs_api.routes import (
    classify_router,
    health_router,
    jobs_router,
    manifests_router,
    packs_router,
    tariffs_router,
    valuation_router,
)
from customs_api.settings import get_settings


def create_app() -> FastAPI:
    app = FastAPI(title="Customs Liquidation API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(get_settings().cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(classify_router)
    app.include_router(tariffs_router)
    app.include_router(valuation_router)
    app.include_router(manifests_router)
    app.include_router(jobs_router)
    app.include_router(packs_router)

    @app.on_event("startup")
    def startup() -> None:
        init_app_state(app)

    return app
