"""Shared pytest fixtures: a fresh SQLite file database per test."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from storefront.adapters.db.sqlalchemy import models
from storefront.adapters.db.sqlalchemy.uow import SQLAlchemyUnitOfWork
from storefront.adapters.security.passwords import BcryptPasswordHasher
from storefront.adapters.security.tokens import JwtTokenService
from storefront.application.dto import RegisterInput
from storefront.application.http.fastapi.api import create_app
from storefront.application.use_cases.accounts import RegisterUserUseCase
from storefront.config import Settings
from storefront.domain.product import Money, Product
from storefront.domain.user import Principal, Role, UserId

ALLOWED_ORIGIN = "http://localhost:3001"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'storefront.db'}",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        client_origin=ALLOWED_ORIGIN,
        environment="test",
    )


@pytest.fixture
def engine(settings):
    engine = create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    models.Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=True, bind=engine)


@pytest.fixture
def uow_factory(session_factory):
    return lambda: SQLAlchemyUnitOfWork(session_factory)


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def tokens():
    return JwtTokenService(secret="test-secret")


@pytest.fixture
def app(settings, session_factory):
    return create_app(settings, session_factory)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(uow_factory, hasher):
    """Create a user through the registration use case, optionally as admin."""

    def _register(email="alice@example.com", username="alice", password="secret123", role=Role.USER, **extra):
        fields = {"birth_year": 1990, "birth_month": 5, "birth_day": 17}
        fields.update(extra)
        out = RegisterUserUseCase(uow_factory(), hasher).execute(
            RegisterInput(email=email, username=username, password=password, **fields)
        )
        if role == Role.ADMIN:
            with uow_factory() as uow:
                uow.users.change_role(UserId(value=out.id), Role.ADMIN)
                uow.commit()
        return out

    return _register


@pytest.fixture
def principal_of(uow_factory):
    def _principal(user_id: int) -> Principal:
        with uow_factory() as uow:
            return Principal.of(uow.users.get(UserId(value=user_id)))

    return _principal


@pytest.fixture
def add_product(uow_factory):
    def _add(owner_id: int, name="Ceramic mug", price=1000) -> int:
        with uow_factory() as uow:
            product_id = uow.products.add(
                Product(name=name, price=Money(amount=price), owner_id=UserId(value=owner_id))
            )
            uow.commit()
            return product_id.value

    return _add


@pytest.fixture
def count_rows(session_factory):
    def _count(model) -> int:
        with session_factory() as session:
            return session.execute(select(func.count()).select_from(model)).scalar_one()

    return _count


@pytest.fixture
def login(client):
    def _login(identifier="alice@example.com", password="secret123") -> str:
        response = client.post("/login", json={"email": identifier, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["token"]

    return _login
