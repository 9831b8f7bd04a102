import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from storefront.application.ports import OrderRepository, ProductRepository, UnitOfWork, UserRepository
from storefront.adapters.db.sqlalchemy.order_repository import SQLAlchemyOrderRepository
from storefront.adapters.db.sqlalchemy.product_repository import SQLAlchemyProductRepository
from storefront.adapters.db.sqlalchemy.user_repository import SQLAlchemyUserRepository
from storefront.domain.errors import ConflictError

logger = logging.getLogger(__name__)

# データベースの変更を伴う単一のビジネスロジック全体をラップするデザインパターン
class SQLAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self.session: Session | None = None
        self._users: UserRepository | None = None
        self._products: ProductRepository | None = None
        self._orders: OrderRepository | None = None

    def __enter__(self) -> "SQLAlchemyUnitOfWork":
        self.session = self._session_factory()
        assert self.session is not None, "UnitOfWork is not entered."
        self.session.begin()
        self._users = SQLAlchemyUserRepository(self.session)
        self._products = SQLAlchemyProductRepository(self.session)
        self._orders = SQLAlchemyOrderRepository(self.session)
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        # commit されていない変更はすべて破棄する
        try:
            if self.session and self.session.in_transaction():
                self.rollback()
        finally:
            if self.session:
                self.session.close()
            self.session = None

    @property
    def users(self) -> UserRepository:
        assert self._users is not None, "UnitOfWork is not entered."
        return self._users

    @property
    def products(self) -> ProductRepository:
        assert self._products is not None, "UnitOfWork is not entered."
        return self._products

    @property
    def orders(self) -> OrderRepository:
        assert self._orders is not None, "UnitOfWork is not entered."
        return self._orders

    def commit(self) -> None:
        assert self.session is not None, "UnitOfWork is not entered."
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning("commit rejected by a constraint: %s", e.orig)
            raise ConflictError("record conflicts with existing data") from e

    def rollback(self) -> None:
        assert self.session is not None, "UnitOfWork is not entered."
        self.session.rollback()
