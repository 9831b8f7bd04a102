from datetime import datetime, timedelta, timezone

import jwt

from storefront.application.ports import TokenService
from storefront.domain.errors import AuthError
from storefront.domain.user import UserId


class JwtTokenService(TokenService):
    """HS256 session tokens carrying only the user id."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=1)):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: UserId) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id.value),
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> UserId:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthError("session expired") from None
        except jwt.InvalidTokenError:
            raise AuthError("session token invalid") from None
        try:
            return UserId(value=int(payload["sub"]))
        except (TypeError, ValueError):
            raise AuthError("session token invalid") from None
