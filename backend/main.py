import logging
import math
import os
import pathlib
import sys
from typing import Dict

import psycopg2
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

_project_root = pathlib.Path(__file__).resolve().parents[1]
if str(_project_root) not in sys.path:
    sys.path.append(str(_project_root))

load_dotenv()

from backend import app_context  # noqa: E402
from backend.app.config import load_app_config  # noqa: E402
from backend.app.routes.billing import router as billing_router  # noqa: E402
from backend.app.routes.content import router as content_router  # noqa: E402
from backend.app.routes.entitlements import router as entitlements_router  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("app")


def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


DB_CONNECT_TIMEOUT = _parse_connect_timeout(os.getenv("DB_CONNECT_TIMEOUT", "5"))


def get_conn():
    database_url = app_context.get_config().database_url
    if not database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    return psycopg2.connect(database_url, connect_timeout=DB_CONNECT_TIMEOUT)


app_context.configure(get_conn=get_conn, get_config=load_app_config)

app = FastAPI(title="Learning Platform API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(RequestValidationError)
async def invalid_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies map to a fixed 400 message.
    logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid request body"})


app.include_router(billing_router)
app.include_router(content_router)
app.include_router(entitlements_router)


@app.get("/api/health")
def health() -> Dict[str, object]:
    config = app_context.get_config()
    return {
        "status": "ok",
        "integrations": {
            "stripe": config.stripe_configured,
            "stripe_webhook": config.webhook_configured,
            "supabase": config.supabase_configured,
            "database": bool(config.database_url),
        },
    }
