import logging

from storefront.application.dto import AdminProductOutput, CreateProductInput, ProductOutput
from storefront.application.ports import UnitOfWork
from storefront.application.use_cases.authorization import require_role
from storefront.domain.errors import ForbiddenError, NotFoundError, validating
from storefront.domain.product import Money, Product, ProductID
from storefront.domain.user import Principal, Role

logger = logging.getLogger(__name__)


class CreateProductUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal, input: CreateProductInput) -> ProductOutput:
        with validating():
            if input.price is None:
                raise ValueError("price is required")
            product = Product(
                name=input.name,
                price=Money(amount=input.price),
                description=(input.description or "").strip() or None,
                image_url=(input.image_url or "").strip() or None,
                owner_id=principal.user_id,
            )

        with self.uow:
            product_id = self.uow.products.add(product)
            self.uow.commit()
            logger.info("product id=%s created by user id=%s", product_id.value, principal.user_id.value)
            created = self.uow.products.get(product_id)
            assert created is not None
            return ProductOutput.of(created)


class ListProductsUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self) -> list[ProductOutput]:
        with self.uow:
            return [ProductOutput.of(p) for p in self.uow.products.list_all()]


class ListProductsForAdminUseCase:
    """Product listing for the admin page, with the owner's email and username."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal) -> list[AdminProductOutput]:
        require_role(principal, Role.ADMIN)
        with self.uow:
            return [AdminProductOutput.of(p) for p in self.uow.products.list_all()]


class GetProductUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, product_id: int) -> ProductOutput:
        with validating():
            pid = ProductID(value=product_id)
        with self.uow:
            product = self.uow.products.get(pid)
            if product is None:
                raise NotFoundError("product not found")
            return ProductOutput.of(product)


class DeleteProductUseCase:
    """Delete a product. Owners may delete their own products, admins any."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal, product_id: int) -> None:
        with validating():
            pid = ProductID(value=product_id)
        with self.uow:
            product = self.uow.products.get(pid)
            if product is None:
                raise NotFoundError("product not found")
            if not product.can_be_deleted_by(principal.user_id, principal.is_admin):
                raise ForbiddenError("not allowed to delete this product")
            self.uow.products.delete(pid)
            self.uow.commit()
            logger.info("product id=%s deleted by user id=%s", product_id, principal.user_id.value)
