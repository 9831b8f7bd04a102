from abc import ABC, abstractmethod

from storefront.domain.order import Order, OrderID, PaymentMethod
from storefront.domain.product import Money, Product, ProductID
from storefront.domain.user import Role, User, UserId


class UserRepository(ABC):
    @abstractmethod
    def add(self, user: User) -> UserId: ...

    @abstractmethod
    def get(self, user_id: UserId) -> User | None: ...

    @abstractmethod
    def get_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    def get_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    def get_by_login(self, identifier: str) -> User | None: ...

    @abstractmethod
    def list_all(self) -> list[User]: ...

    @abstractmethod
    def save(self, user: User) -> None: ...

    @abstractmethod
    def change_role(self, user_id: UserId, new_role: Role) -> bool:
        """Set the role unless doing so would leave no administrator.

        Must run as a single guarded write. Returns False when nothing was
        updated.
        """


class ProductRepository(ABC):
    @abstractmethod
    def add(self, product: Product) -> ProductID: ...

    @abstractmethod
    def get(self, product_id: ProductID) -> Product | None: ...

    @abstractmethod
    def list_all(self) -> list[Product]: ...

    @abstractmethod
    def delete(self, product_id: ProductID) -> None: ...

    @abstractmethod
    def current_prices(self, product_ids: set[ProductID]) -> dict[ProductID, Money]: ...


class OrderRepository(ABC):
    @abstractmethod
    def add(self, order: Order) -> OrderID: ...

    @abstractmethod
    def get(self, order_id: OrderID) -> Order | None: ...

    @abstractmethod
    def get_for_user(self, order_id: OrderID, user_id: UserId) -> Order | None: ...

    @abstractmethod
    def mark_paid(self, order_id: OrderID, user_id: UserId, method: PaymentMethod) -> bool:
        """Conditional pending -> paid transition. Returns False if no row changed."""


class UnitOfWork(ABC):
    @abstractmethod
    def __enter__(self) -> "UnitOfWork": ...

    @abstractmethod
    def __exit__(self, exc_type, exc_value, traceback) -> None: ...

    @property
    @abstractmethod
    def users(self) -> UserRepository: ...

    @property
    @abstractmethod
    def products(self) -> ProductRepository: ...

    @property
    @abstractmethod
    def orders(self) -> OrderRepository: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


class PasswordHasher(ABC):
    @abstractmethod
    def hash(self, raw: str) -> str: ...

    @abstractmethod
    def verify(self, raw: str, hashed: str) -> bool: ...


class TokenService(ABC):
    @abstractmethod
    def issue(self, user_id: UserId) -> str: ...

    @abstractmethod
    def decode(self, token: str) -> UserId:
        """Return the user id carried by a valid token, raise AuthError otherwise."""
