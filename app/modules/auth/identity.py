"""
Identity: resolves the user id every store operation is scoped to.

Users sign in anonymously (a fresh random id) or with a custom token issued by
the hosting environment ("<user_id>.<signature>"). A custom token that fails
verification falls back to anonymous sign-in. Signed-in users receive a session
token ("<user_id>.<issued_at>.<signature>") for the HTTP API.
"""

import base64
import hashlib
import hmac
import logging
import re
import secrets
import time

from app.errors import NotAuthenticated

logger = logging.getLogger(__name__)

# User ids end up inside document paths: no dots, no slashes.
USER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def _sign(secret: str, message: str) -> str:
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def sign_in_anonymously() -> str:
    return secrets.token_hex(14)


def issue_custom_token(user_id: str, secret: str) -> str:
    return f"{user_id}.{_sign(secret, 'custom:' + user_id)}"


def verify_custom_token(token: str, secret: str) -> str:
    user_id, _, signature = token.rpartition(".")
    if not USER_ID_RE.match(user_id):
        raise NotAuthenticated("Invalid custom token")
    if not hmac.compare_digest(signature, _sign(secret, "custom:" + user_id)):
        raise NotAuthenticated("Invalid custom token")
    return user_id


def sign_in_with_custom_token(token: str | None, secret: str) -> tuple[str, bool]:
    """Returns (user_id, anonymous). Falls back to anonymous when the token is missing or bad."""
    if token:
        try:
            return verify_custom_token(token, secret), False
        except NotAuthenticated as e:
            logger.error("Error signing in with custom token: %s", e)
    return sign_in_anonymously(), True


def issue_session_token(user_id: str, secret: str, now: float | None = None) -> str:
    issued_at = int(now if now is not None else time.time())
    message = f"{user_id}.{issued_at}"
    return f"{message}.{_sign(secret, 'session:' + message)}"


def verify_session_token(token: str, secret: str, max_age: int, now: float | None = None) -> str:
    try:
        user_id, issued_at, signature = token.split(".")
        issued = int(issued_at)
    except ValueError:
        raise NotAuthenticated("Malformed session token") from None

    if not hmac.compare_digest(signature, _sign(secret, f"session:{user_id}.{issued_at}")):
        raise NotAuthenticated("Invalid session token")
    if (now if now is not None else time.time()) - issued > max_age:
        raise NotAuthenticated("Session expired; sign in again")
    return user_id
