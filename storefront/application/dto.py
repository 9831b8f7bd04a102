from pydantic import BaseModel, Field
from datetime import date, datetime

from storefront.domain.product import Product
from storefront.domain.user import User

# DTO (Data Transfer Object - データ転送オブジェクト)

class RegisterInput(BaseModel):
    email: str
    username: str
    password: str = Field(repr=False)
    birth_year: int | None = None
    birth_month: int | None = None
    birth_day: int | None = None
    store_name: str | None = None
    store_address: str | None = None


class LoginInput(BaseModel):
    identifier: str
    password: str = Field(repr=False)


class UpdateProfileInput(BaseModel):
    store_name: str | None = None
    store_address: str | None = None
    birth_year: int | None = None
    birth_month: int | None = None
    birth_day: int | None = None


class ChangePasswordInput(BaseModel):
    current_password: str = Field(repr=False)
    new_password: str = Field(repr=False)


class CartItemInput(BaseModel):
    product_id: int
    quantity: int


class CheckoutInput(BaseModel):
    items: list[CartItemInput] = Field(default_factory=list)
    phone: str | None = None
    province: str | None = None
    district: str | None = None
    sub_district: str | None = None
    address: str | None = None


class ConfirmPaymentInput(BaseModel):
    order_id: int
    method: str | None = None


class CreateProductInput(BaseModel):
    name: str | None = None
    price: int | None = None
    description: str | None = None
    image_url: str | None = None


class UserOutput(BaseModel):
    id: int
    email: str
    username: str
    role: str
    birth_date: date | None = None
    store_name: str | None = None
    store_address: str | None = None
    created_at: datetime | None = None

    @classmethod
    def of(cls, user: User) -> "UserOutput":
        assert user.id is not None
        return cls(
            id=user.id.value,
            email=user.email.value,
            username=user.username.value,
            role=user.role.value,
            birth_date=user.birth_date.value if user.birth_date else None,
            store_name=user.store.name,
            store_address=user.store.address,
            created_at=user.created_at,
        )


class LoginOutput(BaseModel):
    token: str
    user: UserOutput


class ProductOutput(BaseModel):
    id: int
    name: str
    price: int
    description: str | None = None
    image_url: str | None = None
    user_id: int
    store_name: str | None = None
    created_at: datetime | None = None

    @classmethod
    def of(cls, product: Product) -> "ProductOutput":
        assert product.id is not None
        return cls(
            id=product.id.value,
            name=product.name,
            price=product.price.amount,
            description=product.description,
            image_url=product.image_url,
            user_id=product.owner_id.value,
            store_name=product.owner_store_name,
            created_at=product.created_at,
        )


class AdminProductOutput(ProductOutput):
    owner_email: str | None = None
    owner_username: str | None = None

    @classmethod
    def of(cls, product: Product) -> "AdminProductOutput":
        return cls(
            **ProductOutput.of(product).model_dump(),
            owner_email=product.owner_email,
            owner_username=product.owner_username,
        )


class CheckoutOutput(BaseModel):
    order_id: int
    total_price: int


class ConfirmPaymentOutput(BaseModel):
    order_id: int
    status: str
    method: str
