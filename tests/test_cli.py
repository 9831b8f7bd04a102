from sqlalchemy import create_engine, inspect

from storefront.__main__ import main
from storefront.config import Settings
from storefront.domain.user import Role, UserId


def test_init_db_creates_tables(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'fresh.db'}"
    monkeypatch.setenv("DATABASE_URL", url)

    assert main(["init-db"]) == 0

    tables = set(inspect(create_engine(url)).get_table_names())
    assert {"users", "products", "orders", "order_items"} <= tables


def test_grant_admin(settings, register, uow_factory, monkeypatch):
    user = register()
    monkeypatch.setenv("DATABASE_URL", settings.database_url)

    assert main(["grant-admin", "ALICE"]) == 0
    assert main(["grant-admin", "nobody"]) == 1

    with uow_factory() as uow:
        assert uow.users.get(UserId(value=user.id)).role == Role.ADMIN


def test_cookie_settings():
    assert Settings(_env_file=None, cookie_samesite="none").secure_cookies is True
    assert Settings(_env_file=None, environment="production").secure_cookies is True
    assert Settings(_env_file=None, environment="production", cookie_secure=False).secure_cookies is False
    assert Settings(_env_file=None).secure_cookies is False
    assert Settings(_env_file=None, client_origin="http://a.test, http://b.test,").allowed_origins == [
        "http://a.test",
        "http://b.test",
    ]
