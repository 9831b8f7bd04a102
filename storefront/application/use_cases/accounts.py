import logging

from storefront.application.dto import (
    ChangePasswordInput,
    LoginInput,
    LoginOutput,
    RegisterInput,
    UpdateProfileInput,
    UserOutput,
)
from storefront.application.ports import PasswordHasher, TokenService, UnitOfWork
from storefront.domain.errors import AuthError, ConflictError, ValidationError, validating
from storefront.domain.user import (
    BirthDate,
    Email,
    Principal,
    RawPassword,
    Role,
    StoreInfo,
    User,
    Username,
    normalize_login,
)

logger = logging.getLogger(__name__)


class RegisterUserUseCase:
    def __init__(self, uow: UnitOfWork, hasher: PasswordHasher):
        self.uow = uow
        self.hasher = hasher

    def execute(self, input: RegisterInput) -> UserOutput:
        # DBに触る前に入力をすべて検証する
        with validating():
            email = Email(value=input.email)
            username = Username(value=input.username)
            password = RawPassword(value=input.password)
            birth_date = BirthDate.from_parts(input.birth_year, input.birth_month, input.birth_day)
            store = StoreInfo(name=input.store_name, address=input.store_address)

        with self.uow:
            if self.uow.users.get_by_email(email.value):
                raise ConflictError("email is already registered", field="email")
            if self.uow.users.get_by_username(username.value):
                raise ConflictError("username is already taken", field="username")
            user = User(
                email=email,
                username=username,
                password_hash=self.hasher.hash(password.value),
                role=Role.USER,
                birth_date=birth_date,
                store=store,
            )
            user_id = self.uow.users.add(user)
            self.uow.commit()
            logger.info("registered user id=%s", user_id.value)
            return UserOutput.of(self.uow.users.get(user_id))


class LoginUseCase:
    def __init__(self, uow: UnitOfWork, hasher: PasswordHasher, tokens: TokenService):
        self.uow = uow
        self.hasher = hasher
        self.tokens = tokens

    def execute(self, input: LoginInput) -> LoginOutput:
        identifier = normalize_login(input.identifier)
        with self.uow:
            user = self.uow.users.get_by_login(identifier) if identifier else None
            if user is None:
                raise AuthError("user not found")
            if not self.hasher.verify(input.password, user.password_hash):
                logger.info("failed login for user id=%s", user.id.value)
                raise AuthError("credentials invalid")
            # トークンには ID だけを載せる (ロールはリクエストごとに DB から取り直す)
            token = self.tokens.issue(user.id)
            return LoginOutput(token=token, user=UserOutput.of(user))


class AuthenticateUseCase:
    """Turn a session token into a principal built from the current user row."""

    def __init__(self, uow: UnitOfWork, tokens: TokenService):
        self.uow = uow
        self.tokens = tokens

    def execute(self, token: str | None) -> Principal:
        if not token:
            raise AuthError("missing session token")
        user_id = self.tokens.decode(token)
        with self.uow:
            user = self.uow.users.get(user_id)
            if user is None:
                raise AuthError("session user no longer exists")
            return Principal.of(user)


class GetProfileUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal) -> UserOutput:
        with self.uow:
            user = self.uow.users.get(principal.user_id)
            if user is None:
                raise AuthError("session user no longer exists")
            return UserOutput.of(user)


class UpdateProfileUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal, input: UpdateProfileInput) -> UserOutput:
        with validating():
            store = StoreInfo(name=input.store_name, address=input.store_address)
            birth_date = BirthDate.from_parts(input.birth_year, input.birth_month, input.birth_day)

        with self.uow:
            user = self.uow.users.get(principal.user_id)
            if user is None:
                raise AuthError("session user no longer exists")
            with validating():
                user.change_profile(store, birth_date)
            self.uow.users.save(user)
            self.uow.commit()
            return UserOutput.of(user)


class ChangePasswordUseCase:
    def __init__(self, uow: UnitOfWork, hasher: PasswordHasher):
        self.uow = uow
        self.hasher = hasher

    def execute(self, principal: Principal, input: ChangePasswordInput) -> None:
        with validating():
            new_password = RawPassword(value=input.new_password)

        with self.uow:
            user = self.uow.users.get(principal.user_id)
            if user is None:
                raise AuthError("session user no longer exists")
            if not self.hasher.verify(input.current_password, user.password_hash):
                raise ValidationError("current password is incorrect")
            user.change_password_hash(self.hasher.hash(new_password.value))
            self.uow.users.save(user)
            self.uow.commit()
            logger.info("password changed for user id=%s", user.id.value)
