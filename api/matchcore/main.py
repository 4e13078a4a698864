import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import init_db, wait_for_db
from .errors import MatchCoreError
from .routes import include_modular_routers

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="MatchCore API")
include_modular_routers(app)

ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MatchCoreError)
async def match_core_error_handler(request: Request, exc: MatchCoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("[api] %s failed: %s", request.url.path, exc, exc_info=True)
    else:
        logger.info("[api] %s rejected (%s): %s", request.url.path, exc.status_code, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc), "type": exc.__class__.__name__},
    )


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    init_db()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
