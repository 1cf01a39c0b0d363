from customs_api.routes.classify import router as classify_router
from customs_api.routes.health import router as health_router
from customs_api.routes.jobs import router as jobs_router
from customs_api.routes.manifests import router as manifests_router
from customs_api.routes.packs import router as packs_router
from customs_api.routes.tariffs import router as tariffs_router
from customs_api.routes.valuation import router as valuation_router

__all__ = [
    "classify_router",
    "health_router",
    "jobs_router",
    "manifests_router",
    "packs_router",
    "tariffs_router",
    "valuation_router",
]
