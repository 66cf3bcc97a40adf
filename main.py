import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings
from database import Database, get_database, serialize_doc, to_object_id
from errors import Conflict, InvalidInput, NotFound, ShopError, Unauthorized
from logging_config import setup_logging
from schemas import Order as OrderSchema
from schemas import OrderItem as OrderItemSchema
from schemas import User as UserSchema
from schemas import order_total
from security import Credentials, get_credentials, get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter()


# ----------------------- Models -----------------------
# Request bodies accept missing fields so handlers can answer "Missing fields"
# instead of a generic validation error.
class RegisterBody(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginBody(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class OrderCreateBody(BaseModel):
    items: Any = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def auth_response(credentials: Credentials, user: dict) -> dict:
    user_id = str(user["_id"])
    return {
        "token": credentials.issue_token(user_id),
        "user": {"id": user_id, "name": user["name"], "email": user["email"]},
    }


# ----------------------- Health -----------------------
@router.get("/", response_class=PlainTextResponse)
def root(request: Request):
    return f"{request.app.state.settings.project_name} running"


@router.get("/api/health")
def health(db: Database = Depends(get_database)):
    response = {
        "backend": "running",
        "database": "not available",
        "collections": [],
    }
    try:
        response["collections"] = db.collection_names()[:10]
        response["database"] = "connected"
    except ShopError as e:
        response["database"] = f"error: {str(e.__cause__ or e)[:80]}"
    return response


# ----------------------- Products -----------------------
@router.get("/api/products")
def list_products(db: Database = Depends(get_database)):
    return [serialize_doc(p) for p in db.get_documents("product")]


@router.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_database)):
    try:
        product = db.get_document("product", product_id)
    except NotFound as e:
        raise NotFound("Product not found") from e
    return serialize_doc(product)


# ----------------------- Auth -----------------------
@router.post("/api/auth/register")
def register(
    body: Optional[RegisterBody] = None,
    db: Database = Depends(get_database),
    credentials: Credentials = Depends(get_credentials),
):
    body = body or RegisterBody()
    if not body.name or not body.email or not body.password:
        raise InvalidInput("Missing fields")
    email = normalize_email(body.email)
    if db.find_document("user", {"email": email}):
        raise Conflict("Email already registered")
    user = UserSchema(
        name=body.name,
        email=email,
        password=credentials.hash_password(body.password),
    )
    try:
        doc = db.create_document("user", user)
    except Conflict as e:
        # lost a race with a concurrent registration; the unique index caught it
        raise Conflict("Email already registered") from e
    logger.info("Registered user %s", doc["_id"])
    return auth_response(credentials, doc)


@router.post("/api/auth/login")
def login(
    body: Optional[LoginBody] = None,
    db: Database = Depends(get_database),
    credentials: Credentials = Depends(get_credentials),
):
    body = body or LoginBody()
    if not body.email or not body.password:
        raise InvalidInput("Missing fields")
    user = db.find_document("user", {"email": normalize_email(body.email)})
    if not credentials.verify_login(body.password, user["password"] if user else None):
        logger.info("Failed login attempt")
        raise Unauthorized("Invalid credentials")
    return auth_response(credentials, user)


# ----------------------- Orders -----------------------
@router.post("/api/orders", status_code=201)
def create_order(
    body: Optional[OrderCreateBody] = None,
    user_id: str = Depends(get_current_user_id),
    db: Database = Depends(get_database),
):
    items = body.items if body else None
    if not isinstance(items, list) or not items:
        raise InvalidInput("Items required")
    order_items = [OrderItemSchema.model_validate(item) for item in items]
    order = OrderSchema(user_id=user_id, items=order_items, total=order_total(order_items))
    doc = db.create_document("order", order)
    logger.info("Order %s created for user %s, total %s", doc["_id"], user_id, order.total)
    return serialize_doc(doc)


@router.get("/api/orders")
def list_orders(
    user_id: str = Depends(get_current_user_id),
    db: Database = Depends(get_database),
):
    orders = db.get_documents("order", {"userId": to_object_id(user_id)}, sort=[("createdAt", -1)])
    return [serialize_doc(o) for o in orders]


# ----------------------- Errors -----------------------
def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def shop_error_handler(request: Request, exc: ShopError):
    return _message(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _message(400, "Invalid request body")


async def record_validation_handler(request: Request, exc: ValidationError):
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"]) or "input"
    return _message(400, f"Invalid {field}: {error['msg']}")


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _message(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _message(500, "Server error")


# ----------------------- App -----------------------
def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    if settings.uses_default_secret:
        logger.warning("JWT_SECRET is not set; using the insecure development secret")
    if database is None:
        database = Database.connect(settings.mongo_uri, settings.db_name)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            database.ensure_indexes()
        except ShopError:
            logger.error("Could not create MongoDB indexes; email uniqueness relies on the lookup only")
        yield

    app = FastAPI(title=settings.project_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.credentials = Credentials.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, record_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    return app


def run() -> None:
    settings = Settings.from_env()
    app = create_app(settings)
    logger.info("Listening on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
