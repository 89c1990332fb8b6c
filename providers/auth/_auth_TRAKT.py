# providers/auth/_auth_TRAKT.py
# WatchBridge - Trakt device-code authentication and request signing
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol

import requests
from requests.auth import AuthBase

from _logging import log as _root_log
from providers.sync._mod_base import AuthError, UnexpectedStatusCodeError
from providers.sync._mod_common import safe_json

API = "https://api.trakt.tv"
OAUTH_DEVICE_CODE = f"{API}/oauth/device/code"
OAUTH_DEVICE_TOKEN = f"{API}/oauth/device/token"

GRANT_DEVICE_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"

__VERSION__ = "1.0.0"
__all__ = ["AuthClient", "DeviceCodes", "TokenState", "TraktAuth", "DeviceApprover", "token_from_config", "token_saver"]

log = _root_log.child("AUTH")

_H: dict[str, str] = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "trakt-api-version": "2",
}


def _now() -> int:
    return int(time.time())


@dataclass(frozen=True)
class DeviceCodes:
    device_code: str
    user_code: str
    verification_url: str = "https://trakt.tv/activate"
    expires_in: int = 600
    interval: int = 5


@dataclass(frozen=True)
class TokenState:
    access_token: str
    refresh_token: str
    expires_at: int

    def expired(self, now: int | None = None) -> bool:
        return (_now() if now is None else int(now)) > self.expires_at

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> "TokenState":
        access = str(data.get("access_token") or "")
        if not access:
            raise AuthError("trakt token response carried no access_token")
        created = int(data.get("created_at") or _now())
        return cls(
            access_token=access,
            refresh_token=str(data.get("refresh_token") or ""),
            expires_at=created + int(data.get("expires_in") or 0),
        )


class DeviceApprover(Protocol):
    def authorize_device(self, user_code: str) -> None: ...


class AuthClient:
    """Talks to Trakt's OAuth device endpoints. Never signs its own requests."""

    def __init__(self, client_id: str, client_secret: str, *, session: requests.Session | None = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = session or requests.Session()

    def _post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        h = dict(_H)
        h["trakt-api-key"] = self.client_id
        r = self.session.post(url, json=payload, headers=h)
        if r.status_code != 200:
            raise UnexpectedStatusCodeError(r.status_code, (200,))
        data = safe_json(r)
        if not isinstance(data, dict):
            raise AuthError(f"unexpected trakt oauth response from {url}")
        return data

    def device_code(self) -> DeviceCodes:
        data = self._post(OAUTH_DEVICE_CODE, {"client_id": self.client_id})
        if not data.get("device_code") or not data.get("user_code"):
            raise AuthError("trakt device code response is missing device_code/user_code")
        return DeviceCodes(
            device_code=str(data["device_code"]),
            user_code=str(data["user_code"]),
            verification_url=str(data.get("verification_url") or "https://trakt.tv/activate"),
            expires_in=int(data.get("expires_in") or 600),
            interval=int(data.get("interval") or 5),
        )

    def _token(self, grant_type: str, secret: str) -> TokenState:
        body: dict[str, Any] = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": grant_type,
        }
        if grant_type == GRANT_DEVICE_CODE:
            body["code"] = secret
        else:
            body["refresh_token"] = secret
        return TokenState.from_response(self._post(OAUTH_DEVICE_TOKEN, body))

    def exchange_device_code(self, device_code: str) -> TokenState:
        return self._token(GRANT_DEVICE_CODE, device_code)

    def exchange_refresh_token(self, refresh_token: str) -> TokenState:
        return self._token(GRANT_REFRESH_TOKEN, refresh_token)


class TraktAuth(AuthBase):
    """requests auth hook: obtains, refreshes and attaches the Trakt access token.

    Acquisition and refresh happen under one lock, so concurrent first requests
    trigger a single device flow and an expired token is refreshed once.
    """

    def __init__(
        self,
        auth_client: AuthClient,
        approver: DeviceApprover,
        *,
        token: TokenState | None = None,
        on_token: Callable[[TokenState], None] | None = None,
        clock: Callable[[], int] = _now,
    ):
        self.auth_client = auth_client
        self.approver = approver
        self.on_token = on_token
        self._clock = clock
        self._token = token
        self._lock = threading.Lock()

    def _device_flow(self) -> TokenState:
        codes = self.auth_client.device_code()
        log.info("requested trakt device code", extra={"verification_url": codes.verification_url})
        try:
            self.approver.authorize_device(codes.user_code)
        except requests.RequestException as e:
            raise AuthError(f"failure approving trakt device code: {e}") from e
        return self.auth_client.exchange_device_code(codes.device_code)

    def _store(self, token: TokenState) -> None:
        self._token = token
        if self.on_token is not None:
            self.on_token(token)

    def ensure_token(self) -> TokenState:
        current = self._token
        if current is not None and not current.expired(self._clock()):
            return current
        with self._lock:
            current = self._token
            if current is None:
                self._store(self._device_flow())
            elif current.expired(self._clock()):
                if current.refresh_token:
                    log.info("trakt access token expired; refreshing")
                    self._store(self.auth_client.exchange_refresh_token(current.refresh_token))
                else:
                    self._store(self._device_flow())
            assert self._token is not None
            return self._token

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        token = self.ensure_token()
        r.headers["Authorization"] = f"Bearer {token.access_token}"
        r.headers["trakt-api-key"] = self.auth_client.client_id
        r.headers["trakt-api-version"] = "2"
        return r


def token_from_config(cfg: Mapping[str, Any]) -> TokenState | None:
    tr = cfg.get("trakt") or {}
    access = str(tr.get("access_token") or "").strip()
    if not access:
        return None
    return TokenState(
        access_token=access,
        refresh_token=str(tr.get("refresh_token") or "").strip(),
        expires_at=int(tr.get("expires_at") or 0),
    )


def token_saver(cfg: dict[str, Any], save: Callable[[dict[str, Any]], None] | None) -> Callable[[TokenState], None]:
    """Keep `cfg` current and hand only the token fields to `save`."""
    def _save(token: TokenState) -> None:
        fields = {"access_token": token.access_token, "refresh_token": token.refresh_token, "expires_at": token.expires_at}
        cfg.setdefault("trakt", {}).update(fields)
        if save is not None:
            save(dict(fields))
        log.debug("trakt tokens stored", extra={"expires_at": token.expires_at})

    return _save
