import logging
import os
import time
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .cache import build_cache
from .config import Settings
from .errors import ServiceError, ValidationError
from .metrics import HTTP_REQUEST_DURATION_SECONDS, HTTP_REQUESTS_TOTAL
from .models import ErrorResponse, Message, MessageCreate
from .service import MessageService
from .storage import SQLiteStore

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_service(settings: Settings) -> MessageService:
    store = SQLiteStore(db_path=settings.db_path, pool_size=settings.db_pool_size)
    store.initialize()
    return MessageService(store=store, cache=build_cache(settings), ttl_seconds=settings.cache_ttl)


def get_service(request: Request) -> MessageService:
    return request.app.state.service


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


def create_app(settings: Settings | None = None, service: MessageService | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="Guestbook")
    app.state.service = service if service is not None else build_service(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    @app.middleware("http")
    async def record_request_metrics(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            labels = {"method": request.method, "route": _route_label(request), "code": str(status_code)}
            HTTP_REQUEST_DURATION_SECONDS.labels(**labels).observe(time.perf_counter() - start)
            HTTP_REQUESTS_TOTAL.labels(**labels).inc()

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": ValidationError().message})

    @app.get("/health")
    def healthcheck(service: MessageService = Depends(get_service)):
        return {
            "ok": True,
            "service": app.title,
            "cache": "enabled" if service.cache_enabled else "disabled",
        }

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request):
        return templates.TemplateResponse(request, "index.html")

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get(
        "/api/messages",
        response_model=list[Message],
        responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    )
    def list_messages(service: MessageService = Depends(get_service)):
        return service.list_messages()

    @app.post(
        "/api/messages",
        response_model=Message,
        status_code=201,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    )
    def post_message(payload: MessageCreate | None = None, service: MessageService = Depends(get_service)):
        return service.post_message(payload.content if payload else None)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    port = int(os.getenv("PORT", "3000"))
    logger.info("Backend server running at http://localhost:%s", port)
    uvicorn.run("guestbook.main:app", host="0.0.0.0", port=port)
