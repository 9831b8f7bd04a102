import logging

from storefront.application.dto import ConfirmPaymentInput, ConfirmPaymentOutput
from storefront.application.ports import UnitOfWork
from storefront.domain.errors import NotFoundError, ValidationError, validating
from storefront.domain.order import OrderID, PaymentMethod, StatusEnum
from storefront.domain.user import Principal

logger = logging.getLogger(__name__)


class ConfirmPaymentUseCase:
    """pending -> paid. The method is recorded as given; nothing is charged."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal, input: ConfirmPaymentInput) -> ConfirmPaymentOutput:
        with validating():
            method = PaymentMethod(value=input.method)
            order_id = OrderID(value=input.order_id)

        with self.uow:
            # 他人の注文は存在しない注文と同じ扱いにする
            order = self.uow.orders.get_for_user(order_id, principal.user_id)
            if order is None:
                raise NotFoundError("order not found")
            order.mark_paid(method)

            # 同時に確定された場合は 0 件更新になる
            if not self.uow.orders.mark_paid(order_id, principal.user_id, method):
                raise ValidationError("order status already changed")
            self.uow.commit()

        logger.info("order id=%s paid by user id=%s via %s", order_id.value, principal.user_id.value, method.value)
        return ConfirmPaymentOutput(
            order_id=order_id.value,
            status=StatusEnum.PAID.value,
            method=method.value,
        )
