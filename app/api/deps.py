"""FastAPI dependencies: per-app services from app.state and the signed-in user."""

from fastapi import Header, Request

from app.config import get_settings
from app.errors import NotAuthenticated
from app.modules.ai.client import GenerativeClient
from app.modules.ai.requests import RequestRegistry
from app.modules.auth.identity import verify_session_token
from app.modules.store.base import DocumentStore
from app.modules.store.gateway import PersistenceGateway


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_ai_client(request: Request) -> GenerativeClient:
    return request.app.state.ai_client


def get_registry(request: Request) -> RequestRegistry:
    return request.app.state.requests


def resolve_user(token: str | None) -> str:
    if not token:
        raise NotAuthenticated("Sign in first: missing session token")
    settings = get_settings()
    return verify_session_token(token, settings.secret_key, settings.session_max_age_seconds)


async def get_current_user(authorization: str | None = Header(None)) -> str:
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    return resolve_user(token)


def build_gateway(store: DocumentStore, user_id: str | None) -> PersistenceGateway:
    return PersistenceGateway(store, get_settings().app_id, user_id)
