from typing import Iterable

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from storefront.application.ports import OrderRepository
from storefront.adapters.db.sqlalchemy import models
from storefront.domain.order import (
    DeliveryInfo,
    Order,
    OrderID,
    OrderItem,
    PaymentMethod,
    Quantity,
    Status,
    StatusEnum,
)
from storefront.domain.product import Money, ProductID
from storefront.domain.user import UserId

################################
# ドメインとSQLAlchemyの変換ヘルパ
################################

def _sa_to_domain_item(ri: models.OrderItem) -> OrderItem:
    return OrderItem(
        product_id=ProductID(value=ri.product_id),
        quantity=Quantity(value=ri.quantity),
        unit_price=Money(amount=ri.unit_price),
    )

def _domain_to_sa_items(items: Iterable[OrderItem]) -> list[models.OrderItem]:
    out: list[models.OrderItem] = []
    for it in items:
        out.append(
            models.OrderItem(
                product_id=it.product_id.value,
                quantity=it.quantity.value,
                unit_price=it.unit_price.amount,
            )
        )
    return out

def _sa_to_domain(sa: models.Order) -> Order:
    return Order.from_persistence(
        id=OrderID(value=sa.id),
        user_id=UserId(value=sa.user_id),
        delivery=DeliveryInfo(
            phone=sa.phone,
            province=sa.province,
            district=sa.district,
            sub_district=sa.sub_district,
            address=sa.address,
        ),
        status=Status(value=StatusEnum(sa.status)),
        items=[_sa_to_domain_item(ri) for ri in sa.items],
        payment_method=PaymentMethod(value=sa.payment_method) if sa.payment_method else None,
        created_at=sa.created_at,
    )

################################
# リポジトリ
################################

class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: Session):
        self.session = session

    def add(self, order: Order) -> OrderID:
        sa = models.Order(
            user_id=order.user_id.value,
            phone=order.delivery.phone,
            province=order.delivery.province,
            district=order.delivery.district,
            sub_district=order.delivery.sub_district,
            address=order.delivery.address,
            total_price=order.total.amount,
            status=order.status.value.value,
            items=_domain_to_sa_items(order.items),
        )
        self.session.add(sa)
        self.session.flush()
        return OrderID(value=sa.id)

    def get(self, order_id: OrderID) -> Order | None:
        sa = self.session.get(models.Order, order_id.value, populate_existing=True)
        if not sa:
            return None
        return _sa_to_domain(sa)

    def get_for_user(self, order_id: OrderID, user_id: UserId) -> Order | None:
        sa = (
            self.session.query(models.Order)
            .filter_by(id=order_id.value, user_id=user_id.value)
            .populate_existing()
            .first()
        )
        if not sa:
            return None
        return _sa_to_domain(sa)

    def mark_paid(self, order_id: OrderID, user_id: UserId, method: PaymentMethod) -> bool:
        # pending の行だけを更新する条件付き UPDATE
        stmt = (
            update(models.Order)
            .where(
                models.Order.id == order_id.value,
                models.Order.user_id == user_id.value,
                models.Order.status == StatusEnum.PENDING.value,
            )
            .values(status=StatusEnum.PAID.value, payment_method=method.value, paid_at=func.now())
        )
        result = self.session.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount > 0
