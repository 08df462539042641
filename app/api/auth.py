import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.deps import get_current_user
from app.config import get_settings
from app.modules.auth.identity import issue_session_token, sign_in_anonymously, sign_in_with_custom_token

logger = logging.getLogger(__name__)

router = APIRouter()


class CustomTokenSignIn(BaseModel):
    token: str | None = None


def _session(user_id: str, anonymous: bool) -> dict:
    settings = get_settings()
    return {
        "user_id": user_id,
        "anonymous": anonymous,
        "session_token": issue_session_token(user_id, settings.secret_key),
    }


@router.post("/anonymous")
async def anonymous_sign_in():
    user_id = sign_in_anonymously()
    logger.info("Anonymous sign-in: %s", user_id)
    return _session(user_id, anonymous=True)


@router.post("/token")
async def custom_token_sign_in(body: CustomTokenSignIn):
    """Sign in with a custom token; falls back to anonymous when it is missing or invalid.

    Without a token in the body, INITIAL_AUTH_TOKEN from the environment is tried.
    """
    settings = get_settings()
    user_id, anonymous = sign_in_with_custom_token(body.token or settings.initial_auth_token, settings.secret_key)
    logger.info("Sign-in: %s (anonymous=%s)", user_id, anonymous)
    return _session(user_id, anonymous=anonymous)


@router.get("/me")
async def me(user_id: str = Depends(get_current_user)):
    return {"user_id": user_id}
