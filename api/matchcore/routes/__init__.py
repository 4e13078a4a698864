from fastapi import APIRouter, FastAPI

from .compare import router as compare_router
from .match import router as match_router
from .search import router as search_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(search_router, tags=["search"])
    app.include_router(match_router, tags=["matches"])
    app.include_router(compare_router, tags=["compare"])


__all__ = ["include_modular_routers", "APIRouter"]
