from datetime import timedelta

import jwt
import pytest

from storefront.adapters.db.sqlalchemy import models
from storefront.adapters.security.tokens import JwtTokenService
from storefront.application.dto import ChangePasswordInput, LoginInput, RegisterInput, UpdateProfileInput
from storefront.application.use_cases.accounts import (
    AuthenticateUseCase,
    ChangePasswordUseCase,
    GetProfileUseCase,
    LoginUseCase,
    RegisterUserUseCase,
    UpdateProfileUseCase,
)
from storefront.domain.errors import AuthError, ConflictError, ValidationError
from storefront.domain.user import Role, UserId


def register_input(**overrides):
    fields = dict(
        email="Alice@Example.com ",
        username=" Alice",
        password="secret123",
        birth_year=1990,
        birth_month=5,
        birth_day=17,
        store_name="Alice's Shop",
        store_address="Peace Avenue 12",
    )
    fields.update(overrides)
    return RegisterInput(**fields)


def test_register_normalizes_and_hashes(uow_factory, hasher, session_factory):
    out = RegisterUserUseCase(uow_factory(), hasher).execute(register_input())

    assert out.email == "alice@example.com"
    assert out.username == "alice"
    assert out.role == "user"
    assert out.store_name == "Alice's Shop"
    assert out.birth_date.isoformat() == "1990-05-17"
    assert "password" not in out.model_dump()
    with session_factory() as session:
        row = session.get(models.User, out.id)
        assert row.password_hash != "secret123"
        assert hasher.verify("secret123", row.password_hash)


def test_register_reports_which_field_collided(uow_factory, hasher):
    uc = RegisterUserUseCase(uow_factory(), hasher)
    uc.execute(register_input())

    with pytest.raises(ConflictError) as email_conflict:
        uc.execute(register_input(username="someone_else"))
    assert email_conflict.value.field == "email"

    with pytest.raises(ConflictError) as username_conflict:
        uc.execute(register_input(email="other@example.com", username="ALICE"))
    assert username_conflict.value.field == "username"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"email": "not-an-email"}, "email address is invalid"),
        ({"username": "x"}, "username must be"),
        ({"password": "123"}, "password must be at least 6"),
        ({"birth_month": 2, "birth_day": 30}, "valid calendar date"),
        ({"birth_year": 2999}, "future"),
    ],
)
def test_register_validation(uow_factory, hasher, count_rows, overrides, message):
    with pytest.raises(ValidationError, match=message):
        RegisterUserUseCase(uow_factory(), hasher).execute(register_input(**overrides))
    assert count_rows(models.User) == 0


def test_login_by_email_or_username(register, uow_factory, hasher, tokens):
    user = register()
    uc = LoginUseCase(uow_factory(), hasher, tokens)

    by_email = uc.execute(LoginInput(identifier=" ALICE@example.com", password="secret123"))
    by_username = uc.execute(LoginInput(identifier="alice", password="secret123"))

    assert by_email.user.id == by_username.user.id == user.id
    payload = jwt.decode(by_email.token, "test-secret", algorithms=["HS256"])
    # トークンには ID 以外のユーザー情報を載せない
    assert payload["sub"] == str(user.id)
    assert "role" not in payload
    assert "email" not in payload


def test_login_failures(register, uow_factory, hasher, tokens):
    register()
    uc = LoginUseCase(uow_factory(), hasher, tokens)

    with pytest.raises(AuthError, match="user not found"):
        uc.execute(LoginInput(identifier="nobody@example.com", password="secret123"))
    with pytest.raises(AuthError, match="credentials invalid"):
        uc.execute(LoginInput(identifier="alice", password="wrong-password"))


def test_authenticate_reloads_role_every_time(register, uow_factory, tokens):
    user = register()
    token = tokens.issue(UserId(value=user.id))
    uc = AuthenticateUseCase(uow_factory(), tokens)

    assert uc.execute(token).role == Role.USER

    with uow_factory() as uow:
        uow.users.change_role(UserId(value=user.id), Role.ADMIN)
        uow.commit()

    assert uc.execute(token).role == Role.ADMIN


def test_authenticate_rejects_bad_tokens(register, uow_factory, tokens):
    user = register()
    uc = AuthenticateUseCase(uow_factory(), tokens)

    with pytest.raises(AuthError):
        uc.execute(None)
    with pytest.raises(AuthError):
        uc.execute("garbage")

    forged = JwtTokenService(secret="other-secret").issue(UserId(value=user.id))
    with pytest.raises(AuthError, match="invalid"):
        uc.execute(forged)

    expired = JwtTokenService(secret="test-secret", ttl=timedelta(seconds=-10)).issue(UserId(value=user.id))
    with pytest.raises(AuthError, match="expired"):
        uc.execute(expired)

    ghost = tokens.issue(UserId(value=user.id + 100))
    with pytest.raises(AuthError, match="no longer exists"):
        uc.execute(ghost)


def test_update_profile(register, uow_factory, principal_of):
    user = register()
    principal = principal_of(user.id)

    out = UpdateProfileUseCase(uow_factory()).execute(
        principal,
        UpdateProfileInput(
            store_name=" New Shop ",
            store_address="Seoul Street 3",
            birth_year=1991,
            birth_month=1,
            birth_day=2,
        ),
    )
    assert out.store_name == "New Shop"
    assert GetProfileUseCase(uow_factory()).execute(principal).store_address == "Seoul Street 3"

    with pytest.raises(ValidationError, match="store name is required"):
        UpdateProfileUseCase(uow_factory()).execute(
            principal,
            UpdateProfileInput(store_name=" ", store_address="x", birth_year=1991, birth_month=1, birth_day=2),
        )


def test_change_password(register, uow_factory, hasher, tokens, principal_of):
    user = register()
    principal = principal_of(user.id)
    uc = ChangePasswordUseCase(uow_factory(), hasher)

    with pytest.raises(ValidationError, match="current password is incorrect"):
        uc.execute(principal, ChangePasswordInput(current_password="nope", new_password="another1"))
    with pytest.raises(ValidationError, match="at least 6"):
        uc.execute(principal, ChangePasswordInput(current_password="secret123", new_password="abc"))

    uc.execute(principal, ChangePasswordInput(current_password="secret123", new_password="another1"))

    login = LoginUseCase(uow_factory(), hasher, tokens)
    assert login.execute(LoginInput(identifier="alice", password="another1")).token
    with pytest.raises(AuthError):
        login.execute(LoginInput(identifier="alice", password="secret123"))
