import logging
import sys

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response

from .errors import StoreFailure
from .rendering import LISTING_ROUTE, InertiaRenderer
from .routers.todos import build_router, store_for_request
from .settings import get_settings
from .validation import field_errors

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Todo listing page, single-item create/update/delete and batch update/delete.",
    },
]

_settings = get_settings()

# Package logger: module loggers under todo_app.* propagate here
logger = logging.getLogger("todo_app")
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(_settings.log_level)

app = FastAPI(
    title="Todo App",
    description="Server-driven todo list with pluggable storage backends.",
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


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> Response:
    """
    Return field-level messages for request validation errors.

    Page visits (``X-Inertia: true``) get the Home page back with the messages
    in ``props.errors``. Other clients get:
        {
            "error": "ValidationError",
            "message": "Request validation failed",
            "errors": {"title": "The title field is required."},
            "detail": [... pydantic/fastapi error details ...]
        }
    """
    errors = exc.errors()
    messages = field_errors(errors)

    renderer = InertiaRenderer(request, get_settings())
    if renderer.is_page_visit:
        return renderer.render_listing(store_for_request(request).list_all(), errors=messages)

    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "errors": messages,
            "detail": [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors],
        },
    )


@app.exception_handler(StoreFailure)
async def store_failure_handler(request: Request, exc: StoreFailure) -> JSONResponse:
    """
    Surface record store failures as 503; the request is not retried.
    """
    logger.exception("Record store failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content={"error": "StoreFailure", "message": "Record store unavailable"},
    )


@app.get("/", summary="Home", tags=["todos"], include_in_schema=False)
def home(request: Request) -> RedirectResponse:
    """
    The site root shows the todo listing.
    """
    return RedirectResponse(url=str(request.url_for(LISTING_ROUTE)), status_code=status.HTTP_302_FOUND)


# PUBLIC_INTERFACE
@app.get("/health", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": _settings.persistence_backend}


app.include_router(build_router())
