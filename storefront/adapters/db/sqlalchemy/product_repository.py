from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from storefront.application.ports import ProductRepository
from storefront.adapters.db.sqlalchemy import models
from storefront.domain.product import Money, Product, ProductID
from storefront.domain.user import UserId


def _sa_to_domain(product_model: models.Product) -> Product:
    owner = product_model.owner
    return Product(
        id=ProductID(value=product_model.id),
        name=product_model.name,
        price=Money(amount=product_model.price),
        description=product_model.description,
        image_url=product_model.image_url,
        owner_id=UserId(value=product_model.user_id),
        owner_store_name=owner.store_name if owner else None,
        owner_email=owner.email if owner else None,
        owner_username=owner.username if owner else None,
        created_at=product_model.created_at,
    )


class SQLAlchemyProductRepository(ProductRepository):
    def __init__(self, session: Session):
        self.session = session

    def add(self, product: Product) -> ProductID:
        product_model = models.Product(
            name=product.name,
            price=product.price.amount,
            description=product.description,
            image_url=product.image_url,
            user_id=product.owner_id.value,
        )
        self.session.add(product_model)
        self.session.flush()
        return ProductID(value=product_model.id)

    def get(self, product_id: ProductID) -> Product | None:
        product_model = self.session.get(models.Product, product_id.value)
        if product_model:
            return _sa_to_domain(product_model)
        return None

    def list_all(self) -> list[Product]:
        product_models = (
            self.session.query(models.Product)
            .order_by(models.Product.created_at.desc(), models.Product.id.desc())
            .all()
        )
        return [_sa_to_domain(p) for p in product_models]

    def delete(self, product_id: ProductID) -> None:
        self.session.execute(delete(models.Product).where(models.Product.id == product_id.value))

    def current_prices(self, product_ids: set[ProductID]) -> dict[ProductID, Money]:
        if not product_ids:
            return {}
        rows = self.session.execute(
            select(models.Product.id, models.Product.price).where(
                models.Product.id.in_([pid.value for pid in product_ids])
            )
        ).all()
        return {ProductID(value=row.id): Money(amount=row.price) for row in rows}
