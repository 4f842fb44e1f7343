import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import PostServiceError
from .routers import posts as posts_router
from .settings import get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "posts",
        "description": "List, fetch, add and update posts with cursor pagination.",
    },
]

_settings = get_settings()

logging.basicConfig()
logging.getLogger("post_api").setLevel(_settings.log_level)

app = FastAPI(
    title="Post Backend",
    description="Backend API service for posts stored in a relational database.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _jsonable_errors(errors) -> list:
    # ctx may hold the raised exception object
    return [{k: v for k, v in err.items() if k != "ctx"} for err in errors]


def _validation_response(errors: list) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "code": "BAD_REQUEST",
            "message": "Request validation failed",
            "detail": errors,
        },
    )


# Global exception handlers for consistent JSON error bodies
@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "code": "BAD_REQUEST",
            "message": "Request validation failed",
            "detail": [... pydantic/fastapi error details ...]
        }
    """
    return _validation_response(_jsonable_errors(exc.errors()))


@app.exception_handler(PostServiceError)
async def service_exception_handler(request: Request, exc: PostServiceError) -> JSONResponse:
    """
    Render NotFound / Conflict as {"error", "code", "message"} with their HTTP status.
    """
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": _settings.persistence_backend}


# Include routers
app.include_router(posts_router.router)
