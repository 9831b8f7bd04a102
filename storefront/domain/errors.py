from contextlib import contextmanager
from pydantic import ValidationError as PydanticValidationError


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    status_code = 400

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        # 最初のエラーだけをユーザー向けメッセージにする
        error = exc.errors()[0]
        ctx_error = error.get("ctx", {}).get("error")
        if isinstance(ctx_error, Exception):
            return cls(str(ctx_error))
        return cls(error["msg"])


class ConflictError(ValidationError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class AuthError(DomainError):
    status_code = 401


class ForbiddenError(DomainError):
    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ServerError(DomainError):
    status_code = 500


@contextmanager
def validating():
    # 値オブジェクトの ValueError をドメインの ValidationError に変換する
    try:
        yield
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e
    except ValueError as e:
        raise ValidationError(str(e)) from e
