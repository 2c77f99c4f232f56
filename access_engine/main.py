from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from access_engine.core import config
from access_engine.core.database.engine import init_db
from access_engine.features.users.routes import router as user_router
from access_engine.features.org.routes import router as org_router
from access_engine.features.staff.routes import router as staff_router
from access_engine.features.permissions.routes import router as permission_router
from access_engine.features.admin.routes import router as admin_router
from access_engine.features.permissions.exceptions import IntegrityViolation, NotAuthorizedToAdminister
from access_engine.features.users.dependencies import get_authorization_header
from access_engine.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Advisor Access Engine",
    description="Hierarchical role-based access control for the advisor back office",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
limiter = Limiter(key_func=get_authorization_header)
app.state.limiter = limiter


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.access_engine.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(NotAuthorizedToAdminister)
async def not_authorized_to_administer_handler(_request: Request, exc: NotAuthorizedToAdminister):
    return JSONResponse(
        status_code=403,
        content={"error": "not_authorized_to_administer", "detail": exc.message}
    )


@app.exception_handler(IntegrityViolation)
async def integrity_violation_handler(request: Request, exc: IntegrityViolation):
    log.warning("Integrity violation on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=409,
        content={"error": "data_inconsistency", "detail": exc.message}
    )


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Advisor Access Engine API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "All endpoints except / and /health require a Bearer token in the Authorization header",
        },
        "features": {
            "org": "Org chart with recursive manager hierarchy and teams",
            "staff": "Support staff and soft-deactivatable delegations to advisors",
            "permissions": "Role, hierarchy and delegation based access decisions",
            "admin": "Admin-only identity linking, org chart and delegation changes",
            "users": "Principals authenticated by Appwrite with one declared role",
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(user_router, prefix="/users", tags=["users"])
app.include_router(org_router, prefix="/org", tags=["org"])
app.include_router(staff_router, prefix="/staff", tags=["staff"])
app.include_router(permission_router, prefix="/permissions", tags=["permissions"])
app.include_router(admin_router, prefix="/admin", tags=["admin"])
