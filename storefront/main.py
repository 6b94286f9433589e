import logging
import re
import time
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from .adapters.memory import InMemoryDatabase, InMemoryUnitOfWork
from .adapters.sql import SqlAlchemyUnitOfWork
from .catalog import CatalogService
from .config import Settings, get_settings
from .db import init_db, make_engine, make_session_factory
from .domain import LineRequest
from .errors import (
    BrandNotFound,
    InsufficientStock,
    NotFound,
    ProductNotFound,
    StorageError,
    StorefrontError,
    UserNotFound,
    ValidationError,
)
from .orders import OrderWorkflow
from .ports import UnitOfWorkFactory
from .responses import INTERNAL_ERROR, write_response
from .schemas import BrandIn, OrderCreate, OrderOut, ProductIn, ProductOut

APP_NAME = "storefront"

logger = logging.getLogger(__name__)

# ---- Prometheus metrics ----
REQS = Counter("http_requests_total", "Total HTTP requests", ["service", "path", "method", "status"])
LAT = Histogram("http_request_duration_seconds", "Request latency", ["service", "path", "method"])
ORDERS_CREATED = Counter("orders_created_total", "Orders created successfully")
ORDERS_FAILED = Counter("order_create_failures_total", "Order create failures", ["reason"])

router = APIRouter()

# ASCII digits with an optional sign
ID_PATTERN = re.compile(r"[+-]?[0-9]+")


# ---------- Dependencies ----------
def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_uow_factory(request: Request) -> UnitOfWorkFactory:
    return request.app.state.uow_factory


def get_order_workflow(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)) -> OrderWorkflow:
    return OrderWorkflow(uow_factory)


def get_catalog(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)) -> CatalogService:
    return CatalogService(uow_factory)


# ---------- Helpers ----------
def failure_status(settings: Settings, exc: Optional[Exception] = None) -> int:
    """
    Every failure is a 500 unless strict status codes are enabled, in which
    case missing entities are 404 and malformed input is 400.
    """
    if settings.strict_status_codes:
        if isinstance(exc, NotFound):
            return 404
        if isinstance(exc, ValidationError):
            return 400
    return 500


def parse_id(raw: Optional[str], settings: Settings):
    """Returns (id, None) or (None, error response) for an ?id= query value."""
    if not raw:
        return None, write_response(failure_status(settings, ValidationError()), "Parameter ID not found")
    if not ID_PATTERN.fullmatch(raw):
        return None, write_response(failure_status(settings, ValidationError()), "Parameter ID is not numeric")
    return int(raw), None


# ---------- Endpoints ----------
@router.post("/brand")
def create_brand(
    payload: BrandIn,
    catalog: CatalogService = Depends(get_catalog),
    settings: Settings = Depends(app_settings),
):
    try:
        catalog.create_brand(payload.name)
    except StorageError as e:
        return write_response(failure_status(settings, e), "Internal server error")
    return write_response(200, "brand created successfully")


@router.post("/product")
def create_product(
    payload: ProductIn,
    catalog: CatalogService = Depends(get_catalog),
    settings: Settings = Depends(app_settings),
):
    try:
        catalog.create_product(payload.brand_id, payload.name, payload.qty, payload.price)
    except BrandNotFound as e:
        return write_response(failure_status(settings, e), "Brand ID not found")
    except StorageError as e:
        return write_response(failure_status(settings, e), "Internal server error")
    return write_response(200, "product created successfully")


@router.get("/product")
def get_product(
    id: Optional[str] = None,
    catalog: CatalogService = Depends(get_catalog),
    settings: Settings = Depends(app_settings),
):
    product_id, error = parse_id(id, settings)
    if error:
        return error
    try:
        product = catalog.get_product(product_id)
    except (ProductNotFound, StorageError) as e:
        return write_response(failure_status(settings, e), "Error fetching the product")
    return write_response(200, "Success", ProductOut.model_validate(product))


@router.get("/product/brand")
def get_products_by_brand(
    id: Optional[str] = None,
    catalog: CatalogService = Depends(get_catalog),
    settings: Settings = Depends(app_settings),
):
    brand_id, error = parse_id(id, settings)
    if error:
        return error
    try:
        products = catalog.products_by_brand(brand_id)
    except StorageError as e:
        return write_response(failure_status(settings, e), "Error fetching the product")
    return write_response(200, "Success", [ProductOut.model_validate(p) for p in products])


@router.post("/order")
def create_order(
    payload: OrderCreate,
    workflow: OrderWorkflow = Depends(get_order_workflow),
    settings: Settings = Depends(app_settings),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key", max_length=128),
):
    lines = [LineRequest(product_id=d.product_id, qty=d.qty) for d in payload.detail]
    try:
        order = workflow.create_order(payload.user_id, lines, idempotency_key=idempotency_key)
    except UserNotFound as e:
        ORDERS_FAILED.labels(reason="missing_user").inc()
        return write_response(failure_status(settings, e), "User ID not found")
    except ProductNotFound as e:
        ORDERS_FAILED.labels(reason="missing_product").inc()
        return write_response(failure_status(settings, e), "Product ID not found")
    except InsufficientStock as e:
        ORDERS_FAILED.labels(reason="insufficient_stock").inc()
        return write_response(failure_status(settings, e), INTERNAL_ERROR)
    except ValidationError as e:
        ORDERS_FAILED.labels(reason="invalid_request").inc()
        return write_response(failure_status(settings, e), "Invalid json structure")
    except StorageError as e:
        ORDERS_FAILED.labels(reason="storage").inc()
        return write_response(failure_status(settings, e), INTERNAL_ERROR)

    ORDERS_CREATED.inc()
    return write_response(200, "order created successfully", OrderOut.model_validate(order))


@router.get("/order")
def get_order(
    id: Optional[str] = None,
    workflow: OrderWorkflow = Depends(get_order_workflow),
    settings: Settings = Depends(app_settings),
):
    order_id, error = parse_id(id, settings)
    if error:
        return error
    try:
        order = workflow.get_order(order_id)
    except (NotFound, StorageError) as e:
        return write_response(failure_status(settings, e), "Error fetching the transaction")
    return write_response(200, "Success", OrderOut.model_validate(order))


# ---------- Exception handlers ----------
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return write_response(404, "404 page not found", headers=exc.headers)
    if exc.status_code == 405:
        return write_response(405, "Method not Allowed", headers=exc.headers)
    return write_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    settings = request.app.state.settings
    code = failure_status(settings, ValidationError())
    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        return write_response(code, "Error processing request")
    return write_response(code, "Invalid json structure")


async def storefront_exception_handler(request: Request, exc: StorefrontError):
    logger.error("unhandled %s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return write_response(failure_status(request.app.state.settings, exc), INTERNAL_ERROR)


# ---------- Application factory ----------
def build_uow_factory(settings: Settings, app: FastAPI) -> UnitOfWorkFactory:
    """Select the storage backend named by settings.db_type."""
    if settings.db_type == "memory":
        logger.warning("Using in-memory storage; data is lost on restart")
        return partial(InMemoryUnitOfWork, InMemoryDatabase(), settings.context_timeout)

    logger.info("Using %s storage", settings.db_type)
    engine = make_engine(settings)

    # ---- Startup: ensure schema + tables exist (idempotent) ----
    @app.on_event("startup")
    def on_startup():
        init_db(engine, settings.db_schema)

    @app.on_event("shutdown")
    def on_shutdown():
        engine.dispose()

    return partial(SqlAlchemyUnitOfWork, make_session_factory(engine), settings.context_timeout)


def create_app(settings: Optional[Settings] = None, uow_factory: Optional[UnitOfWorkFactory] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=APP_NAME)
    app.state.settings = settings
    app.state.uow_factory = uow_factory or build_uow_factory(settings, app)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        REQS.labels(APP_NAME, request.url.path, request.method, response.status_code).inc()
        LAT.labels(APP_NAME, request.url.path, request.method).observe(time.time() - start)
        return response

    @app.get("/health", response_class=PlainTextResponse)
    def health():
        return "ok"

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StorefrontError, storefront_exception_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app
