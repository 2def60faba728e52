import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api.routes.charts import router as charts_router
from backend.app.api.routes.system import router as system_router


logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS")
    if raw is None:
        origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not be empty.")
    if not any(origin in origins for origin in ("http://localhost:5173", "http://127.0.0.1:5173")):
        logger.warning("CORS allowlist does not include local dev origins: %s", origins)
    return origins


app = FastAPI(title="Merchant Chart Analytics API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["GET", "DELETE"],
    allow_headers=["*"],
)

app.include_router(system_router)
app.include_router(charts_router)
