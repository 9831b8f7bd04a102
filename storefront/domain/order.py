from pydantic import BaseModel, ConfigDict, PrivateAttr, ValidationInfo, computed_field, field_validator
from datetime import datetime
from typing import Iterable
import copy
import enum

from storefront.domain.errors import ValidationError
from storefront.domain.product import INT_MAX, Money, ProductID
from storefront.domain.user import UserId

##################################
# 値オブジェクト
##################################

class Quantity(BaseModel):
    value: int
    model_config = ConfigDict(frozen=True)

    @field_validator("value")
    @classmethod
    def check_quantity_range(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be positive")
        if v > INT_MAX:
            raise ValueError("quantity is too large")
        return v


class OrderID(BaseModel):
    value: int
    model_config = ConfigDict(frozen=True)

    @field_validator("value")
    @classmethod
    def check_range(cls, v: int) -> int:
        if v > INT_MAX:
            raise ValueError("order id is out of range")
        return v


class StatusEnum(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class Status(BaseModel):
    value: StatusEnum
    model_config = ConfigDict(frozen=True)


class DeliveryInfo(BaseModel):
    phone: str
    province: str
    district: str
    sub_district: str
    address: str
    model_config = ConfigDict(frozen=True)

    @field_validator("phone", "province", "district", "sub_district", "address", mode="before")
    @classmethod
    def check_not_blank(cls, v: str, info: ValidationInfo) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError(f"{info.field_name.replace('_', ' ')} is required")
        return v


class PaymentMethod(BaseModel):
    value: str
    model_config = ConfigDict(frozen=True)

    @field_validator("value", mode="before")
    @classmethod
    def check_method(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("payment method is required")
        if len(v) > 50:
            raise ValueError("payment method is too long")
        return v

##################################
# エンティティ
##################################

class OrderItem(BaseModel):
    product_id: ProductID
    quantity: Quantity
    unit_price: Money
    model_config = ConfigDict(frozen=True, extra="forbid")

    @computed_field
    @property
    def subtotal(self) -> Money:
        return self.unit_price * self.quantity.value

###################################
# 集約ルート (OrderItem は Order を通じてのみ操作可能)
###################################

class Order(BaseModel):
    id: OrderID | None = None
    user_id: UserId
    delivery: DeliveryInfo
    payment_method: PaymentMethod | None = None
    created_at: datetime | None = None
    __items: list[OrderItem] = PrivateAttr(default_factory=list)
    __status: Status = PrivateAttr(default_factory=lambda: Status(value=StatusEnum.PENDING))
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @classmethod
    def place(
        cls,
        user_id: UserId,
        delivery: DeliveryInfo,
        lines: Iterable[tuple[ProductID, Quantity, Money]],
    ) -> "Order":
        order = cls(user_id=user_id, delivery=delivery)
        for product_id, quantity, unit_price in lines:
            order.add_item(product_id, quantity, unit_price)
        if not order.__items:
            raise ValueError("cart is empty")
        # 小計・合計とも Money の上限に収まること
        try:
            order.total
        except ValueError:
            raise ValueError("order total is too large") from None
        return order

    def add_item(self, product_id: ProductID, quantity: Quantity, unit_price: Money):
        if self.__status.value != StatusEnum.PENDING:
            raise ValueError("cannot modify a non-pending order")
        # 同じ商品でも数量はまとめず、明細を別々に持つ
        self.__items.append(
            OrderItem(product_id=product_id, quantity=quantity, unit_price=unit_price)
        )

    def ensure_payable(self):
        if self.__status.value != StatusEnum.PENDING:
            raise ValidationError("order status already changed")

    def mark_paid(self, method: PaymentMethod):
        self.ensure_payable()
        self.payment_method = method
        self.__status = Status(value=StatusEnum.PAID)

    @computed_field
    @property
    def status(self) -> Status:
        return self.__status

    @computed_field
    @property
    def items(self) -> list[OrderItem]:
        return copy.deepcopy(self.__items)

    @computed_field
    @property
    def total(self) -> Money:
        total = Money(amount=0)
        for item in self.__items:
            total += item.subtotal
        return total

    # NOTE: ドメインのルールを破らずに永続化から復元するためのファクトリメソッド
    @classmethod
    def from_persistence(
        cls,
        id: OrderID,
        user_id: UserId,
        delivery: DeliveryInfo,
        status: Status,
        items: Iterable[OrderItem],
        payment_method: PaymentMethod | None = None,
        created_at: datetime | None = None,
    ) -> "Order":
        o = cls(id=id, user_id=user_id, delivery=delivery, payment_method=payment_method, created_at=created_at)
        setattr(o, f"_{cls.__name__}__status", status)
        setattr(o, f"_{cls.__name__}__items", list(items))
        return o
