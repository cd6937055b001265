from typing import Iterator, Optional

from fastapi import Depends, Header, Request, Response
from sqlalchemy.orm import Session

from stocksync.config import Settings
from stocksync.core.constants import INVENTORY_HEADER
from stocksync.core.security import AuthContext, authenticate_request, ensure_role
from stocksync.services.inventory_context import InventoryContext


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_auth(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> AuthContext:
    settings = get_app_settings(request)
    api_key = request.headers.get(settings.API_KEY_HEADER) or request.headers.get("api-key")
    auth = authenticate_request(settings, api_key=api_key, authorization=authorization)
    request.state.auth = auth
    return auth


def require_edit(auth: AuthContext = Depends(require_auth)) -> AuthContext:
    return ensure_role(auth, "editor")


def get_inventory_context(
    request: Request,
    response: Response,
    inventory_id: Optional[str] = Header(None, alias=INVENTORY_HEADER),
) -> InventoryContext:
    context = request.app.state.inventory_resolver.resolve(inventory_id)
    request.state.inventory_id = context.inventory_id
    response.headers[INVENTORY_HEADER] = context.inventory_id
    return context


def get_db(context: InventoryContext = Depends(get_inventory_context)) -> Iterator[Session]:
    db = context.store.session()
    try:
        yield db
    finally:
        db.close()


__all__ = [
    "get_app_settings",
    "get_db",
    "get_inventory_context",
    "require_auth",
    "require_edit",
]
