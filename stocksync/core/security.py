from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Optional

import jwt

from stocksync.config import Settings
from stocksync.core.constants import ROLE_RANKS
from stocksync.core.errors import Forbidden, Unauthorized


@dataclass(frozen=True)
class AuthContext:
    role: str
    device_id: Optional[str] = None
    auth_type: str = "anonymous"


def role_rank(role: Optional[str]) -> int:
    return ROLE_RANKS.get(str(role or "").strip().lower(), 0)


def _split_keys(value: Optional[str]) -> set[str]:
    keys = set()
    if value:
        for entry in value.split(","):
            entry = entry.strip()
            if entry:
                keys.add(entry)
    return keys


def _get_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _auth_configured(settings: Settings) -> bool:
    return bool(
        settings.OWNER_TOKEN
        or settings.EDITOR_API_KEYS
        or settings.VIEWER_API_KEYS
        or settings.JWT_SECRET
    )


def _safe_equal(left: str, right: str) -> bool:
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


def _match_api_key(settings: Settings, key: str) -> Optional[AuthContext]:
    if settings.OWNER_TOKEN and _safe_equal(key, settings.OWNER_TOKEN.strip()):
        return AuthContext(role="owner", auth_type="owner_token")
    for candidate in _split_keys(settings.EDITOR_API_KEYS):
        if _safe_equal(key, candidate):
            return AuthContext(role="editor", auth_type="api_key")
    for candidate in _split_keys(settings.VIEWER_API_KEYS):
        if _safe_equal(key, candidate):
            return AuthContext(role="viewer", auth_type="api_key")
    return None


def _decode_device_token(settings: Settings, token: str) -> AuthContext:
    if not settings.JWT_SECRET:
        raise Unauthorized("Device tokens are not configured.")
    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=options,
        )
    except jwt.PyJWTError as exc:
        raise Unauthorized("Invalid device token.") from exc

    role = str(payload.get("role") or "editor").lower()
    if role_rank(role) == 0:
        raise Unauthorized("Device token carries an unknown role.")
    device_id = payload.get("device_id") or payload.get("sub")
    return AuthContext(
        role=role,
        device_id=str(device_id) if device_id else None,
        auth_type="device_token",
    )


def authenticate_request(
    settings: Settings,
    *,
    api_key: Optional[str],
    authorization: Optional[str],
) -> AuthContext:
    """Resolve the caller's role from an API key or bearer token.

    Bearer values are tried as API keys first (the owner token is usually
    sent that way), then decoded as device JWTs. With no credentials
    configured and AUTH_REQUIRED off, every caller is treated as owner.
    """
    if api_key:
        matched = _match_api_key(settings, api_key.strip())
        if matched:
            return matched

    token = _get_bearer_token(authorization)
    if token:
        matched = _match_api_key(settings, token)
        if matched:
            return matched
        if settings.JWT_SECRET:
            return _decode_device_token(settings, token)

    if not _auth_configured(settings) and not settings.AUTH_REQUIRED:
        return AuthContext(role="owner")

    raise Unauthorized()


def ensure_role(auth: AuthContext, min_role: str) -> AuthContext:
    if role_rank(auth.role) < role_rank(min_role):
        raise Forbidden()
    return auth


def issue_device_token(settings: Settings, *, device_id: str, role: str = "editor") -> str:
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET is not configured")
    payload = {"device_id": device_id, "role": role}
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


__all__ = [
    "AuthContext",
    "authenticate_request",
    "ensure_role",
    "issue_device_token",
    "role_rank",
]
