from __future__ import annotations

import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from storefront.auth import require_roles
from storefront.auth import service as auth_service
from storefront.auth.crud import bootstrap_admin_if_needed
from storefront.auth.deps import get_config, get_hasher, get_issuer
from storefront.auth.security import PasswordHasher, TokenIssuer
from storefront.config import Config, load_config
from storefront.db import connect, init_db
from storefront.errors import StorefrontError, Unauthenticated, ValidationFailed
from storefront.files import storage
from storefront.products import crud as product_crud
from storefront.products import service as products


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


router = APIRouter()


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Auth
# -----------------------------

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_password(password: str) -> None:
    if len(password) < 6 or len(password) > 50:
        raise ValidationFailed("password must be between 6 and 50 characters")
    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit_or_symbol = any(c.isdigit() or not c.isalnum() for c in password)
    if not (has_upper and has_lower and has_digit_or_symbol):
        raise ValidationFailed(
            "The password must have a Uppercase, lowercase letter and a number"
        )


class RegisterRequest(BaseModel):
    email: str
    password: str
    full_name: str


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/auth/register", status_code=201)
def auth_register(
    payload: RegisterRequest,
    cfg: Config = Depends(get_config),
    hasher: PasswordHasher = Depends(get_hasher),
    issuer: TokenIssuer = Depends(get_issuer),
) -> Dict[str, Any]:
    email = (payload.email or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationFailed("email must be an email")
    _check_password(payload.password or "")
    if not (payload.full_name or "").strip():
        raise ValidationFailed("full_name must not be empty")

    with connect(cfg.DB_DSN) as conn:
        return auth_service.register(
            conn,
            email=email,
            password=payload.password,
            full_name=payload.full_name,
            hasher=hasher,
            issuer=issuer,
        )


@router.post("/auth/login")
def auth_login(
    payload: LoginRequest,
    cfg: Config = Depends(get_config),
    hasher: PasswordHasher = Depends(get_hasher),
    issuer: TokenIssuer = Depends(get_issuer),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return auth_service.login(
            conn,
            email=payload.email,
            password=payload.password,
            hasher=hasher,
            issuer=issuer,
        )


@router.get("/auth/check-status")
def auth_check_status(
    user: Dict[str, Any] = Depends(require_roles("auth.check_status")),
    issuer: TokenIssuer = Depends(get_issuer),
) -> Dict[str, Any]:
    return auth_service.check_status(user, issuer)


@router.get("/auth/private")
def auth_private(user: Dict[str, Any] = Depends(require_roles("auth.private"))) -> Dict[str, Any]:
    return {"ok": True, "user": user}


# -----------------------------
# Products
# -----------------------------

Gender = Literal["men", "women", "kid", "unisex"]


class ProductCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    slug: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    sizes: List[str]
    gender: Gender
    tags: Optional[List[str]] = None
    images: Optional[List[str]] = None


class ProductUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    slug: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    sizes: Optional[List[str]] = None
    gender: Optional[Gender] = None
    tags: Optional[List[str]] = None
    images: Optional[List[str]] = None


def _require_uuid(value: str) -> str:
    if not product_crud.is_uuid(value):
        raise ValidationFailed("Validation failed (uuid is expected)")
    return value


@router.post("/products", status_code=201)
def create_product(
    payload: ProductCreateRequest,
    user: Dict[str, Any] = Depends(require_roles("products.create")),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return products.create_product(conn, payload.model_dump(exclude_none=True), user)


@router.get("/products")
def list_products(
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    _user: Dict[str, Any] = Depends(require_roles("products.list")),
    cfg: Config = Depends(get_config),
) -> List[Dict[str, Any]]:
    with connect(cfg.DB_DSN) as conn:
        return products.list_products(
            conn,
            limit=limit,
            offset=offset,
            default_limit=cfg.PRODUCTS_DEFAULT_LIMIT,
        )


@router.get("/products/{term}")
def get_product(
    term: str,
    _user: Dict[str, Any] = Depends(require_roles("products.get")),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return products.get_product_plain(conn, term)


@router.patch("/products/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdateRequest,
    user: Dict[str, Any] = Depends(require_roles("products.update")),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    _require_uuid(product_id)
    # exclude_unset keeps "images omitted" distinct from "images: []".
    changes = payload.model_dump(exclude_unset=True)
    with connect(cfg.DB_DSN) as conn:
        return products.update_product(conn, product_id, changes, user)


@router.delete("/products/{product_id}")
def delete_product(
    product_id: str,
    _user: Dict[str, Any] = Depends(require_roles("products.delete")),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    _require_uuid(product_id)
    with connect(cfg.DB_DSN) as conn:
        return products.delete_product(conn, product_id)


# -----------------------------
# Files (product images)
# -----------------------------


@router.post("/files/product", status_code=201)
async def upload_product_image(
    file: Optional[UploadFile] = File(None),
    _user: Dict[str, Any] = Depends(require_roles("files.upload")),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if file is None or not storage.is_allowed_image(file.filename or "", file.content_type):
        raise ValidationFailed("Make sure that the file is an image")

    data = await file.read()
    name = storage.store_product_image(cfg.PRODUCT_IMAGES_DIR, file.filename or "", data)
    return {"secure_url": storage.secure_url(cfg.HOST_API, name)}


@router.get("/files/product/{image_name}")
def get_product_image(image_name: str, cfg: Config = Depends(get_config)) -> FileResponse:
    return FileResponse(storage.product_image_path(cfg.PRODUCT_IMAGES_DIR, image_name))


# -----------------------------
# App
# -----------------------------


def _storefront_error(_request: Request, exc: StorefrontError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


def create_app(cfg: Config | None = None) -> FastAPI:
    cfg = cfg or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Ensure schema exists.
        init_db(cfg.DB_DSN)

        # Bootstrap first admin if needed (only when users table is empty)
        boot = bootstrap_admin_if_needed(cfg, app.state.hasher)
        if boot:
            _debug(f"Bootstrapped initial admin user: email={boot.get('email')} roles={boot.get('roles')}")
        yield

    app = FastAPI(title="Storefront API", version="0.1.0", lifespan=lifespan)

    # Make config and auth collaborators available to dependencies.
    app.state.cfg = cfg
    app.state.hasher = PasswordHasher()
    app.state.issuer = TokenIssuer(
        secret=cfg.AUTH_JWT_SECRET,
        expires_minutes=cfg.AUTH_TOKEN_EXPIRE_MINUTES,
    )

    # CORS is mainly needed for local development (frontend dev server -> API).
    origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(StorefrontError, _storefront_error)
    app.include_router(router)
    return app


app = create_app()
