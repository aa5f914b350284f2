"""
    Inventory Service API

    This module implements a FastAPI-based service for per-user inventory
    management. Every product belongs to the authenticated user that created
    it and is stored in a key-value store under that user's namespace.

    Endpoints (all under API_PREFIX):
    - POST /signup: Create a user through the identity provider
    - GET /products: List the caller's products
    - POST /products: Create a product
    - PUT /products/{product_id}: Update a product's quantity
    - DELETE /products/{product_id}: Delete a product
    - GET /health: Health check

    Every response is JSON; failures are ``{"error": message}``.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import auth, crud, models, schemas
from .config import API_PREFIX, KV_BACKEND, LOG_LEVEL
from .database import engine
from .errors import BadRequest, InternalError
from .identity import IdentityRejected, IdentityUnavailable, SupabaseIdentity, get_identity
from .kv_store import StoreError, get_store

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create the key-value table
    if KV_BACKEND == "sql":
        models.Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="inventory-service", lifespan=lifespan)

router = APIRouter(prefix=API_PREFIX)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        # Unexpected errors never expose their detail
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    return response


# Added after the request logger so it wraps it, error responses included
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()

    # Unparseable JSON is rejected before dependencies run; authenticate
    # first so that a bad token still wins over a bad body
    if any(error.get("type") == "json_invalid" for error in errors) and auth.requires_auth(request.scope.get("route")):
        provide_identity = request.app.dependency_overrides.get(get_identity, get_identity)
        try:
            await auth.authenticate(auth.bearer_token(request.headers.get("Authorization")), provide_identity())
        except StarletteHTTPException as e:
            return await http_error_handler(request, e)

    messages = []
    for error in errors:
        field = ".".join(part for part in error["loc"] if isinstance(part, str) and part != "body")
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "; ".join(messages) or "Invalid request"},
    )


@router.get("/health")
def health():
    """
    Health check endpoint. No authentication.

    Example:
        GET /api/health
        Response: {"status": "ok"}
    """
    return {"status": "ok"}


@router.post("/signup", response_model=schemas.SignupResponse)
async def signup(
    payload: schemas.SignupRequest,
    identity: SupabaseIdentity = Depends(get_identity),
):
    """
    Create a user through the identity provider, with the email auto-confirmed.

    Raises:
        BadRequest: 400 if a field is missing or the provider refuses the user
        InternalError: 500 on an unexpected provider failure
    """
    try:
        user = await identity.create_user(payload.email, payload.password, {"name": payload.name})
    except IdentityRejected as e:
        logger.info(f"Signup rejected for {payload.email}: {e.message}")
        raise BadRequest(e.message)
    except IdentityUnavailable as e:
        logger.error(f"Signup failed for {payload.email}: {e}")
        raise InternalError("Signup failed")

    metadata = user.get("user_metadata") or {}
    return schemas.SignupResponse(
        user=schemas.SignupUser(id=user["id"], email=user["email"], name=metadata.get("name")),
    )


@router.get("/products", response_model=schemas.ProductList)
def list_products(
    current_user: auth.CurrentUser = Depends(auth.get_current_user),
    store=Depends(get_store),
):
    """
    List every product owned by the caller.

    Returns:
        ``{"products": [...]}``, empty if the caller has none
    """
    try:
        products = crud.get_products(store, current_user.id)
    except StoreError as e:
        logger.error(f"Listing products for {current_user.id} failed: {e}")
        raise InternalError("Failed to fetch products")
    return schemas.ProductList(products=products)


@router.post("/products", response_model=schemas.ProductEnvelope, status_code=status.HTTP_201_CREATED)
def create_product(
    item: schemas.ProductCreate,
    current_user: auth.CurrentUser = Depends(auth.get_current_user),
    store=Depends(get_store),
):
    """
    Create a product owned by the caller.

    Raises:
        BadRequest: 400 if a field is missing or invalid
        InternalError: 500 if the store write fails
    """
    try:
        product = crud.create_product(store, current_user.id, item)
    except StoreError as e:
        logger.error(f"Creating product for {current_user.id} failed: {e}")
        raise InternalError("Failed to create product")
    logger.info(f"Created product {product.id} for {current_user.id}")
    return schemas.ProductEnvelope(product=product)


@router.put("/products/{product_id}", response_model=schemas.ProductEnvelope)
def update_product(
    product_id: str,
    item: schemas.ProductQuantityUpdate,
    current_user: auth.CurrentUser = Depends(auth.get_current_user),
    store=Depends(get_store),
):
    """
    Replace the quantity of one of the caller's products.

    Raises:
        BadRequest: 400 if quantity is missing or negative
        NotFound: 404 if the caller owns no product with that id
        InternalError: 500 on a store failure
    """
    try:
        product = crud.update_product_quantity(store, current_user.id, product_id, item.quantity)
    except StoreError as e:
        logger.error(f"Updating product {product_id} for {current_user.id} failed: {e}")
        raise InternalError("Failed to update product")
    return schemas.ProductEnvelope(product=product)


@router.delete("/products/{product_id}", response_model=schemas.DeleteResult)
def delete_product(
    product_id: str,
    current_user: auth.CurrentUser = Depends(auth.get_current_user),
    store=Depends(get_store),
):
    """
    Delete one of the caller's products. Succeeds even if it did not exist.
    """
    try:
        crud.delete_product(store, current_user.id, product_id)
    except StoreError as e:
        logger.error(f"Deleting product {product_id} for {current_user.id} failed: {e}")
        raise InternalError("Failed to delete product")
    return schemas.DeleteResult()


app.include_router(router)
