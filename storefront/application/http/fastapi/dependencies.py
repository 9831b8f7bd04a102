from fastapi import Depends, Request

from storefront.adapters.db.sqlalchemy.uow import SQLAlchemyUnitOfWork
from storefront.application.ports import PasswordHasher, TokenService
from storefront.application.use_cases.accounts import (
    AuthenticateUseCase,
    ChangePasswordUseCase,
    GetProfileUseCase,
    LoginUseCase,
    RegisterUserUseCase,
    UpdateProfileUseCase,
)
from storefront.application.use_cases.authorization import ListUsersUseCase, SetUserRoleUseCase, require_role
from storefront.application.use_cases.checkout import CheckoutUseCase
from storefront.application.use_cases.payment import ConfirmPaymentUseCase
from storefront.application.use_cases.products import (
    CreateProductUseCase,
    DeleteProductUseCase,
    GetProductUseCase,
    ListProductsForAdminUseCase,
    ListProductsUseCase,
)
from storefront.application.http.fastapi.security import read_session_token
from storefront.config import Settings
from storefront.domain.user import Principal, Role


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


# ユースケースごとに新しい UnitOfWork を渡す
def new_uow(request: Request) -> SQLAlchemyUnitOfWork:
    return SQLAlchemyUnitOfWork(request.app.state.session_factory)

#
# 認証
#
def get_authenticate_uc(request: Request, tokens: TokenService = Depends(get_tokens)):
    return AuthenticateUseCase(uow=new_uow(request), tokens=tokens)

def get_principal(
    request: Request,
    settings: Settings = Depends(get_settings),
    uc: AuthenticateUseCase = Depends(get_authenticate_uc),
) -> Principal:
    return uc.execute(read_session_token(request, settings))

def get_admin(principal: Principal = Depends(get_principal)) -> Principal:
    return require_role(principal, Role.ADMIN)

#
# アカウント
#
def get_register_uc(request: Request, hasher: PasswordHasher = Depends(get_hasher)):
    return RegisterUserUseCase(uow=new_uow(request), hasher=hasher)

def get_login_uc(
    request: Request,
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenService = Depends(get_tokens),
):
    return LoginUseCase(uow=new_uow(request), hasher=hasher, tokens=tokens)

def get_profile_uc(request: Request):
    return GetProfileUseCase(uow=new_uow(request))

def get_update_profile_uc(request: Request):
    return UpdateProfileUseCase(uow=new_uow(request))

def get_change_password_uc(request: Request, hasher: PasswordHasher = Depends(get_hasher)):
    return ChangePasswordUseCase(uow=new_uow(request), hasher=hasher)

#
# 管理者
#
def get_list_users_uc(request: Request):
    return ListUsersUseCase(uow=new_uow(request))

def get_set_user_role_uc(request: Request):
    return SetUserRoleUseCase(uow=new_uow(request))

#
# 商品
#
def get_create_product_uc(request: Request):
    return CreateProductUseCase(uow=new_uow(request))

def get_list_products_uc(request: Request):
    return ListProductsUseCase(uow=new_uow(request))

def get_list_products_for_admin_uc(request: Request):
    return ListProductsForAdminUseCase(uow=new_uow(request))

def get_product_uc(request: Request):
    return GetProductUseCase(uow=new_uow(request))

def get_delete_product_uc(request: Request):
    return DeleteProductUseCase(uow=new_uow(request))

#
# 注文・支払い
#
def get_checkout_uc(request: Request):
    return CheckoutUseCase(uow=new_uow(request))

def get_confirm_payment_uc(request: Request):
    return ConfirmPaymentUseCase(uow=new_uow(request))
