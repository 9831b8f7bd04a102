import logging

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront import __version__
from storefront.adapters.security.passwords import BcryptPasswordHasher
from storefront.adapters.security.tokens import JwtTokenService
from storefront.application.dto import (
    ChangePasswordInput,
    CheckoutInput,
    ConfirmPaymentInput,
    CreateProductInput,
    LoginInput,
    RegisterInput,
    UpdateProfileInput,
)
from storefront.application.http.fastapi import dependencies as deps
from storefront.application.http.fastapi.schemas import (
    AdminProductResponse,
    ChangePasswordRequest,
    ChangeRoleRequest,
    CheckoutRequest,
    CheckoutResponse,
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    CreateAccountRequest,
    CreateAccountResponse,
    CreateProductRequest,
    CreateProductResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProductResponse,
    UpdateAccountRequest,
    UserEnvelope,
    UserResponse,
)
from storefront.application.http.fastapi.security import clear_session_cookie, origin_guard, set_session_cookie
from storefront.application.use_cases.accounts import (
    ChangePasswordUseCase,
    GetProfileUseCase,
    LoginUseCase,
    RegisterUserUseCase,
    UpdateProfileUseCase,
)
from storefront.application.use_cases.authorization import ListUsersUseCase, SetUserRoleUseCase
from storefront.application.use_cases.checkout import CheckoutUseCase
from storefront.application.use_cases.payment import ConfirmPaymentUseCase
from storefront.application.use_cases.products import (
    CreateProductUseCase,
    DeleteProductUseCase,
    GetProductUseCase,
    ListProductsForAdminUseCase,
    ListProductsUseCase,
)
from storefront.config import Settings
from storefront.domain.errors import ConflictError, DomainError
from storefront.domain.user import Principal

logger = logging.getLogger(__name__)

router = APIRouter()

###################################
# 認証
###################################

@router.post("/create-account", response_model=CreateAccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    data: CreateAccountRequest,
    uc: RegisterUserUseCase = Depends(deps.get_register_uc),
):
    out = uc.execute(RegisterInput(**data.model_dump()))
    return {"message": "Account created", "user": out}


@router.post("/login", response_model=LoginResponse)
def login(
    data: LoginRequest,
    response: Response,
    settings: Settings = Depends(deps.get_settings),
    uc: LoginUseCase = Depends(deps.get_login_uc),
):
    out = uc.execute(LoginInput(identifier=data.login_id, password=data.password))
    set_session_cookie(response, out.token, settings)
    return out


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, settings: Settings = Depends(deps.get_settings)):
    # トークン自体は失効させない (期限切れまで有効)
    clear_session_cookie(response, settings)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserEnvelope)
def me(
    principal: Principal = Depends(deps.get_principal),
    uc: GetProfileUseCase = Depends(deps.get_profile_uc),
):
    return {"user": uc.execute(principal)}

###################################
# アカウント
###################################

@router.patch("/account", response_model=UserEnvelope)
def update_account(
    data: UpdateAccountRequest,
    principal: Principal = Depends(deps.get_principal),
    uc: UpdateProfileUseCase = Depends(deps.get_update_profile_uc),
):
    return {"user": uc.execute(principal, UpdateProfileInput(**data.model_dump()))}


@router.patch("/account/password", response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    principal: Principal = Depends(deps.get_principal),
    uc: ChangePasswordUseCase = Depends(deps.get_change_password_uc),
):
    uc.execute(principal, ChangePasswordInput(**data.model_dump()))
    return {"message": "Password changed"}

###################################
# 商品
###################################

@router.post("/products", response_model=CreateProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    data: CreateProductRequest,
    principal: Principal = Depends(deps.get_principal),
    uc: CreateProductUseCase = Depends(deps.get_create_product_uc),
):
    out = uc.execute(principal, CreateProductInput(**data.model_dump()))
    return {"message": "Product added successfully", "product": out}


@router.get("/products", response_model=list[ProductResponse])
def list_products(uc: ListProductsUseCase = Depends(deps.get_list_products_uc)):
    return uc.execute()


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, uc: GetProductUseCase = Depends(deps.get_product_uc)):
    return uc.execute(product_id)


@router.delete("/products/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: int,
    principal: Principal = Depends(deps.get_principal),
    uc: DeleteProductUseCase = Depends(deps.get_delete_product_uc),
):
    uc.execute(principal, product_id)
    return {"message": "Product deleted"}

###################################
# 管理者
###################################

@router.get("/admin/products", response_model=list[AdminProductResponse])
def admin_list_products(
    admin: Principal = Depends(deps.get_admin),
    uc: ListProductsForAdminUseCase = Depends(deps.get_list_products_for_admin_uc),
):
    return uc.execute(admin)


@router.delete("/admin/products/{product_id}", response_model=MessageResponse)
def admin_delete_product(
    product_id: int,
    admin: Principal = Depends(deps.get_admin),
    uc: DeleteProductUseCase = Depends(deps.get_delete_product_uc),
):
    uc.execute(admin, product_id)
    return {"message": "Product deleted"}


@router.get("/admin/users", response_model=list[UserResponse])
def admin_list_users(
    admin: Principal = Depends(deps.get_admin),
    uc: ListUsersUseCase = Depends(deps.get_list_users_uc),
):
    return uc.execute(admin)


@router.patch("/admin/users/{user_id}/role", response_model=UserEnvelope)
def admin_set_role(
    user_id: int,
    data: ChangeRoleRequest,
    admin: Principal = Depends(deps.get_admin),
    uc: SetUserRoleUseCase = Depends(deps.get_set_user_role_uc),
):
    return {"user": uc.execute(admin, user_id, data.role)}

###################################
# 注文・支払い
###################################

@router.post("/payment", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
def checkout(
    data: CheckoutRequest,
    principal: Principal = Depends(deps.get_principal),
    uc: CheckoutUseCase = Depends(deps.get_checkout_uc),
):
    out = uc.execute(principal, CheckoutInput(**data.model_dump()))
    return CheckoutResponse(message="Order created", order_id=out.order_id, total_price=out.total_price)


@router.post("/payment-pending", response_model=ConfirmPaymentResponse)
def confirm_payment(
    data: ConfirmPaymentRequest,
    principal: Principal = Depends(deps.get_principal),
    uc: ConfirmPaymentUseCase = Depends(deps.get_confirm_payment_uc),
):
    out = uc.execute(principal, ConfirmPaymentInput(**data.model_dump()))
    return ConfirmPaymentResponse(message="Payment confirmed", **out.model_dump())


@router.get("/health")
def health():
    return {"ok": True}

###################################
# エラーハンドラ
###################################

async def handle_domain_error(request: Request, exc: DomainError):
    body = {"message": exc.message}
    if isinstance(exc, ConflictError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=body)


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        loc = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"{loc}: {errors[0]['msg']}" if loc else errors[0]["msg"]
    else:
        message = "invalid request"
    return JSONResponse(status_code=400, content={"message": message})


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "internal server error"})

###################################
# アプリケーションの組み立て
###################################

def create_app(settings: Settings | None = None, session_factory: sessionmaker | None = None) -> FastAPI:
    settings = settings or Settings()
    if session_factory is None:
        engine = create_engine(settings.database_url, echo=settings.sql_echo, pool_pre_ping=True)
        session_factory = sessionmaker(autoflush=True, bind=engine)

    app = FastAPI(title="Storefront API", version=__version__)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.hasher = BcryptPasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.tokens = JwtTokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=settings.token_ttl,
    )

    app.middleware("http")(origin_guard(settings))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(router)
    return app
