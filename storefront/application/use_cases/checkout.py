import logging

from storefront.application.dto import CheckoutInput, CheckoutOutput
from storefront.application.ports import UnitOfWork
from storefront.domain.errors import DomainError, ServerError, ValidationError, validating
from storefront.domain.order import DeliveryInfo, Order, Quantity
from storefront.domain.product import ProductID
from storefront.domain.user import Principal

logger = logging.getLogger(__name__)


class CheckoutUseCase:
    """Turn a cart into a pending order priced from the product table.

    Only product ids and quantities come from the client. Prices are read
    inside the same transaction that writes the order and its items, so a
    missing product aborts the whole order.
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal, input: CheckoutInput) -> CheckoutOutput:
        if not input.items:
            raise ValidationError("cart is empty")
        with validating():
            delivery = DeliveryInfo(
                phone=input.phone,
                province=input.province,
                district=input.district,
                sub_district=input.sub_district,
                address=input.address,
            )
            cart = [
                (ProductID(value=item.product_id), Quantity(value=item.quantity))
                for item in input.items
            ]

        try:
            with self.uow:
                product_ids = {product_id for product_id, _ in cart}
                prices = self.uow.products.current_prices(product_ids)
                if len(prices) < len(product_ids):
                    raise ValidationError("some items are unavailable")

                with validating():
                    order = Order.place(
                        user_id=principal.user_id,
                        delivery=delivery,
                        lines=[(pid, qty, prices[pid]) for pid, qty in cart],
                    )
                order_id = self.uow.orders.add(order)
                self.uow.commit()
        except DomainError:
            raise
        except Exception:
            logger.exception("checkout failed for user id=%s", principal.user_id.value)
            raise ServerError("failed to create order")

        logger.info(
            "order id=%s placed by user id=%s total=%s",
            order_id.value,
            principal.user_id.value,
            order.total.amount,
        )
        return CheckoutOutput(order_id=order_id.value, total_price=order.total.amount)
