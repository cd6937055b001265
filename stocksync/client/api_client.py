"""Blocking JSON client for the sync server."""

import json
import logging
from typing import Any, Iterable, Optional
from urllib import error, request
from urllib.parse import urlencode

from stocksync.core.constants import INVENTORY_HEADER

logger = logging.getLogger(__name__)


class ApiUnavailableError(RuntimeError):
    """The server could not be reached (DNS, refused, timeout)."""


class ApiRequestError(RuntimeError):
    def __init__(self, status: int, body: Any = None) -> None:
        self.status = int(status)
        self.body = body
        code = body.get("code") if isinstance(body, dict) else None
        super().__init__("Sync API error: HTTP {}{}".format(self.status, " " + code if code else ""))

    @property
    def is_conflict(self) -> bool:
        return self.status == 409


def _decode_body(raw: bytes) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _expect(body: Any, kind: type, status: int = 200) -> Any:
    if not isinstance(body, kind):
        raise ApiRequestError(status, body)
    return body


class SyncApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        inventory_id: Optional[str] = None,
        timeout: float = 15.0,
        urlopen=None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = (token or "").strip() or None
        self.inventory_id = inventory_id
        self.timeout = timeout
        self._urlopen = urlopen or request.urlopen

    @classmethod
    def from_settings(cls, settings) -> "SyncApiClient":
        return cls(
            settings.SERVER_URL,
            token=settings.TOKEN,
            inventory_id=settings.INVENTORY_ID,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
        )

    def _headers(self, has_body: bool) -> dict:
        headers = {"Accept": "application/json"}
        if has_body:
            headers["Content-Type"] = "application/json"
        if self.token:
            if self.token.lower().startswith("bearer "):
                headers["Authorization"] = self.token
            else:
                headers["Authorization"] = "Bearer {}".format(self.token)
        if self.inventory_id:
            headers[INVENTORY_HEADER] = self.inventory_id
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        payload: Any = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        url = self.base_url + path
        if params:
            query = {key: value for key, value in params.items() if value is not None}
            if query:
                url = "{}?{}".format(url, urlencode(query))
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = request.Request(url, data=data, method=method, headers=self._headers(data is not None))
        try:
            with self._urlopen(req, timeout=timeout or self.timeout) as response:  # nosec B310
                status = getattr(response, "status", None) or 200
                body = _decode_body(response.read())
        except error.HTTPError as exc:
            try:
                body = _decode_body(exc.read())
            except (OSError, ValueError):
                body = None
            raise ApiRequestError(exc.code, body) from exc
        except (error.URLError, OSError) as exc:
            reason = getattr(exc, "reason", exc)
            raise ApiUnavailableError("Sync server unavailable: {}".format(reason)) from exc
        if isinstance(body, str):
            # A 2xx page that is not JSON, e.g. a captive portal login.
            raise ApiRequestError(status, body)
        return body

    def health(self, *, timeout: Optional[float] = None) -> dict:
        return _expect(self.request("GET", "/health", timeout=timeout), dict)

    def export_snapshot(self) -> dict:
        return _expect(self.request("GET", "/export"), dict)

    def list_items(self, *, since: Optional[int] = None, include_deleted: bool = False) -> dict:
        params = {"since": since}
        if include_deleted:
            params["include_deleted"] = "true"
        return _expect(self.request("GET", "/items", params=params), dict)

    def create_item(self, data: dict) -> dict:
        return _expect(self.request("POST", "/items", payload=data), dict)

    def update_item(self, item_id: int, changes: dict) -> dict:
        return _expect(self.request("PUT", "/items/{}".format(int(item_id)), payload=changes), dict)

    def delete_item(self, item_id: int) -> dict:
        return self.request("DELETE", "/items/{}".format(int(item_id)))

    def apply_scans(self, events: Iterable[dict]) -> dict:
        return _expect(self.request("POST", "/scans", payload={"events": list(events)}), dict)

    def list_categories(self) -> list:
        return _expect(self.request("GET", "/categories"), list)

    def list_locations(self) -> list:
        return _expect(self.request("GET", "/locations"), list)


__all__ = ["ApiRequestError", "ApiUnavailableError", "SyncApiClient"]
