from pydantic import BaseModel, ConfigDict, field_validator
from datetime import datetime

from storefront.domain.user import UserId

# DB の INT 列に収まる上限
INT_MAX = 2**31 - 1

##################################
# 値オブジェクト
##################################

class Money(BaseModel):
    amount: int
    model_config = ConfigDict(frozen=True)

    @field_validator("amount")
    @classmethod
    def check_amount_range(cls, v: int) -> int:
        if v < 0:
            raise ValueError("amount must be non-negative")
        if v > INT_MAX:
            raise ValueError("amount is too large")
        return v

    def __add__(self, other: "Money") -> "Money":
        return Money(amount=self.amount + other.amount)

    def __mul__(self, times: int) -> "Money":
        return Money(amount=self.amount * times)


class ProductID(BaseModel):
    value: int
    model_config = ConfigDict(frozen=True)

    @field_validator("value")
    @classmethod
    def check_range(cls, v: int) -> int:
        if v > INT_MAX:
            raise ValueError("product id is out of range")
        return v

##################################
# エンティティ
##################################

class Product(BaseModel):
    id: ProductID | None = None
    name: str
    price: Money
    description: str | None = None
    image_url: str | None = None
    owner_id: UserId
    owner_store_name: str | None = None
    owner_email: str | None = None
    owner_username: str | None = None
    created_at: datetime | None = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("product name is required")
        return v

    def can_be_deleted_by(self, user_id: UserId, is_admin: bool) -> bool:
        return is_admin or self.owner_id == user_id
