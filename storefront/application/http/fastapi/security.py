import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from storefront.config import Settings

logger = logging.getLogger(__name__)

UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def read_session_token(request: Request, settings: Settings) -> str | None:
    # Authorization: Bearer を優先し、なければクッキーを見る
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        bearer = header[len("Bearer "):].strip()
        if bearer:
            return bearer
    return request.cookies.get(settings.auth_cookie_name) or None


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.cookie_max_age_seconds,
        path="/",
        domain=settings.cookie_domain or None,
        secure=settings.secure_cookies,
        httponly=True,
        samesite=settings.cookie_samesite,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        domain=settings.cookie_domain or None,
        secure=settings.secure_cookies,
        httponly=True,
        samesite=settings.cookie_samesite,
    )


def origin_guard(settings: Settings):
    """Reject state-changing requests sent from an origin outside the allow-list.

    Requests without an Origin header (curl, server-to-server) are let through.
    """
    allowed = set(settings.allowed_origins)

    async def check_origin(request: Request, call_next):
        if request.method in UNSAFE_METHODS:
            origin = request.headers.get("origin")
            if origin and origin not in allowed:
                logger.warning("rejected %s %s from origin %s", request.method, request.url.path, origin)
                return JSONResponse(status_code=403, content={"message": "origin not allowed"})
        return await call_next(request)

    return check_origin
