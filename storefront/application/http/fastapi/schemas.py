from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

###################################
# リクエスト (camelCase / snake_case どちらも受け付ける)
###################################

class RequestSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateAccountRequest(RequestSchema):
    email: str = ""
    username: str = ""
    password: str = Field(default="", repr=False)
    birth_year: int | None = None
    birth_month: int | None = None
    birth_day: int | None = None
    store_name: str | None = None
    store_address: str | None = None


class LoginRequest(RequestSchema):
    identifier: str | None = None
    email: str | None = None
    username: str | None = None
    password: str = Field(default="", repr=False)

    @property
    def login_id(self) -> str:
        return self.identifier or self.email or self.username or ""


class UpdateAccountRequest(RequestSchema):
    store_name: str | None = None
    store_address: str | None = None
    birth_year: int | None = None
    birth_month: int | None = None
    birth_day: int | None = None


class ChangePasswordRequest(RequestSchema):
    current_password: str = Field(default="", repr=False)
    new_password: str = Field(default="", repr=False)


class CreateProductRequest(RequestSchema):
    name: str | None = Field(default=None, validation_alias=AliasChoices("productName", "name"))
    price: int | None = None
    description: str | None = None
    image_url: str | None = None


class CartItemRequest(RequestSchema):
    # クライアントから送られてくる価格は読まない
    product_id: int
    quantity: int


class CheckoutRequest(RequestSchema):
    items: list[CartItemRequest] = Field(default_factory=list)
    phone: str | None = None
    province: str | None = None
    district: str | None = None
    sub_district: str | None = Field(
        default=None,
        validation_alias=AliasChoices("subDistrict", "sub_district", "khoroo"),
    )
    address: str | None = None


class ConfirmPaymentRequest(RequestSchema):
    order_id: int
    method: str | None = None


class ChangeRoleRequest(RequestSchema):
    role: str | None = None

###################################
# レスポンス
###################################

class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    role: str
    birth_date: date | None = None
    store_name: str | None = None
    store_address: str | None = None
    created_at: datetime | None = None


class UserEnvelope(BaseModel):
    user: UserResponse


class CreateAccountResponse(MessageResponse):
    user: UserResponse


class LoginResponse(BaseModel):
    user: UserResponse
    token: str


class ProductResponse(BaseModel):
    id: int
    name: str
    price: int
    description: str | None = None
    image_url: str | None = None
    user_id: int
    store_name: str | None = None
    created_at: datetime | None = None


class AdminProductResponse(ProductResponse):
    owner_email: str | None = None
    owner_username: str | None = None


class CreateProductResponse(MessageResponse):
    product: ProductResponse


class CheckoutResponse(MessageResponse):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    order_id: int
    total_price: int


class ConfirmPaymentResponse(MessageResponse):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    order_id: int
    status: str
    method: str
