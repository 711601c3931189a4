from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from versenest_auth.core.config import Settings, get_settings
from versenest_auth.core.logging_setup import configure_logging
from versenest_auth.db.accounts import AccountDirectory
from versenest_auth.routers import auth, users


def create_app(directory: Optional[AccountDirectory] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the reference identity service around ``directory``."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="VerseNest Identity Service",
        description="Reference identity service for reader and writer accounts.",
        version="0.1.0",
        openapi_tags=[
            {"name": "auth", "description": "Authentication"},
            {"name": "users", "description": "Profile of the signed-in account"},
        ],
    )
    app.state.directory = directory if directory is not None else AccountDirectory()

    # Install CORS middleware early so that OPTIONS preflight is handled
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Ensure standard HTTP exceptions pass through with their headers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_passthrough(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    # Do not treat validation errors from OPTIONS as failures; keep 422 for everything else
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        if request.method.upper() == "OPTIONS":
            return JSONResponse(status_code=204, content=None)
        return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})

    app.include_router(auth.router)
    app.include_router(users.router)
    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw input (it may contain a password)."""
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]


app = create_app()
