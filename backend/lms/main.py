"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lms.config import settings
from lms.database import Base, engine
from lms.errors import LMSError

# Import routers
from lms.routers import users, servers, invites, assessments, results, grades

# Import all models so Base.metadata knows about them
from lms.models.user import User                                  # noqa: F401
from lms.models.server import Server, Member, Channel             # noqa: F401
from lms.models.assessment import Assessment, Result              # noqa: F401

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Classroom LMS",
    description="Classrooms, membership approval, exam/exercise submissions and grade statistics",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LMSError)
async def lms_error_handler(request: Request, exc: LMSError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "redirect_to": exc.redirect_to},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Invalid request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request body", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]


# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(servers.router, prefix="/api/servers", tags=["Servers"])
app.include_router(invites.router, prefix="/api/invites", tags=["Invites"])
app.include_router(assessments.router, prefix="/api", tags=["Assessments"])
app.include_router(results.router, prefix="/api/results", tags=["Results"])
app.include_router(grades.router, prefix="/api/grades", tags=["Grades"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
