import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from applymate.config import settings
from applymate.database import engine, init_db
from applymate.logging_config import setup_logging
from applymate.routers import auth, contacts, dashboard, jobs, resume
from applymate.services.llm_client import LLMDisabledError

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ApplyMate API",
    description="Job applications, networking contacts, resumes and AI-assisted analysis.",
    version="1.0.0",
)

cors_origins = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(jobs.router)
app.include_router(resume.router)
app.include_router(contacts.router)
app.include_router(dashboard.router)


def field_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group validation messages by wire field name; errors without a field go under "_form"."""
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())[1:]]
        key = ".".join(loc) or "_form"
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.setdefault(key, []).append(msg)
    return errors


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Validation failed on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "fieldErrors": field_errors(exc)},
    )


@app.exception_handler(LLMDisabledError)
async def llm_disabled_handler(request: Request, exc: LLMDisabledError):
    logger.warning("AI feature requested while Bedrock is disabled: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"success": False, "error": "AI features are not enabled"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


@app.get("/health/live")
def health_live():
    return {"status": "ok"}


@app.get("/health/ready")
def health_ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception:
        logger.exception("Readiness check failed")
        return JSONResponse(status_code=503, content={"status": "not_ready"})


@app.on_event("startup")
def on_startup():
    logger.info("Starting ApplyMate API")
    placeholders = []
    if "username:password@" in settings.database_url:
        placeholders.append("DATABASE_URL")
    if "placeholder" in settings.cognito_user_pool_id or "placeholder" in settings.cognito_client_id:
        placeholders.append("COGNITO_USER_POOL_ID / COGNITO_CLIENT_ID")
    if placeholders:
        if settings.is_production:
            raise RuntimeError(f"Placeholder settings are not allowed in production: {', '.join(placeholders)}")
        logger.warning("Using placeholder settings for %s. Set them in .env.", ", ".join(placeholders))
    init_db()
