import logging
import os
import sys
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import psycopg2
from dotenv import load_dotenv

_project_root = Path(__file__).resolve().parents[1]
if str(_project_root) not in sys.path:
    sys.path.append(str(_project_root))

load_dotenv()

from vtm_backend import app_context
from vtm_backend.app.errors import ServiceError
from vtm_backend.app.routes.auth import router as auth_router
from vtm_backend.app.routes.payments import router as payments_router
from vtm_backend.app.routes.usage import router as usage_router
from vtm_backend.app.services.sessions import get_app_config
from vtm_backend.config import env_flag

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("vtm_backend")

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

config = get_app_config()


def get_conn():
    return psycopg2.connect(**config.db_config)


app_context.configure(get_conn=get_conn)


def apply_schema() -> None:
    conn = get_conn()
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


app = FastAPI(title="Voice Typing Master API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.cors_origins),
    allow_credentials="*" not in config.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(payments_router)
app.include_router(usage_router)


@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500 and not exc.retryable:
        logger.error("Request failed %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=dict(exc.payload))


@app.on_event("startup")
def _apply_schema_on_startup() -> None:
    if env_flag("VTM_APPLY_SCHEMA"):
        logger.info("Applying database schema from %s", SCHEMA_PATH)
        apply_schema()


@app.get("/api/healthz")
def healthz():
    return {"ok": True}
