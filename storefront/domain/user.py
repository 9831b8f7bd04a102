from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, datetime
import enum
import re

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[a-z0-9._-]{3,20}$")
PASSWORD_MIN_LENGTH = 6


def normalize_login(value: str) -> str:
    return str(value or "").strip().lower()

##################################
# 値オブジェクト
##################################

class UserId(BaseModel):
    value: int
    model_config = ConfigDict(frozen=True)


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class Email(BaseModel):
    value: str
    model_config = ConfigDict(frozen=True)

    @field_validator("value", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_login(v)

    @field_validator("value")
    @classmethod
    def check_shape(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError("email address is invalid")
        return v


class Username(BaseModel):
    value: str
    model_config = ConfigDict(frozen=True)

    @field_validator("value", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_login(v)

    @field_validator("value")
    @classmethod
    def check_charset(cls, v: str) -> str:
        if not USERNAME_PATTERN.match(v):
            raise ValueError("username must be 3-20 characters of a-z, 0-9, '.', '_' or '-'")
        return v


class RawPassword(BaseModel):
    value: str = Field(repr=False)
    model_config = ConfigDict(frozen=True)

    @field_validator("value")
    @classmethod
    def check_length(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
        return v


class BirthDate(BaseModel):
    value: date
    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_parts(cls, year: int, month: int, day: int, today: date | None = None) -> "BirthDate":
        try:
            d = date(int(year), int(month), int(day))
        except (TypeError, ValueError, OverflowError):
            raise ValueError("birth date is not a valid calendar date") from None
        if d > (today or date.today()):
            raise ValueError("birth date cannot be in the future")
        return cls(value=d)


class StoreInfo(BaseModel):
    name: str | None = None
    address: str | None = None
    model_config = ConfigDict(frozen=True)

    @field_validator("name", "address", mode="before")
    @classmethod
    def strip(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

##################################
# エンティティ
##################################

class User(BaseModel):
    id: UserId | None = None
    email: Email
    username: Username
    password_hash: str = Field(repr=False)
    role: Role = Role.USER
    birth_date: BirthDate | None = None
    store: StoreInfo = Field(default_factory=StoreInfo)
    created_at: datetime | None = None
    model_config = ConfigDict(validate_assignment=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def change_profile(self, store: StoreInfo, birth_date: BirthDate):
        if not store.name:
            raise ValueError("store name is required")
        if not store.address:
            raise ValueError("store address is required")
        self.store = store
        self.birth_date = birth_date

    def change_password_hash(self, new_hash: str):
        self.password_hash = new_hash

#
# リクエストごとに最新のユーザー行から組み立てる認証済み主体
#
class Principal(BaseModel):
    user_id: UserId
    email: str
    username: str
    role: Role
    model_config = ConfigDict(frozen=True)

    @classmethod
    def of(cls, user: User) -> "Principal":
        assert user.id is not None, "user is not persisted"
        return cls(
            user_id=user.id,
            email=user.email.value,
            username=user.username.value,
            role=user.role,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
