# WatchBridge test scripts
from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest
import requests
import responses

from providers.auth._auth_TRAKT import (
    OAUTH_DEVICE_CODE,
    OAUTH_DEVICE_TOKEN,
    AuthClient,
    TokenState,
    TraktAuth,
    token_from_config,
    token_saver,
)
from providers.sync._mod_base import AuthError, UnexpectedStatusCodeError
from wb_platform.config_base import load_config, save_trakt_tokens

API_URL = "https://api.trakt.tv/users/me"


class FakeApprover:
    def __init__(self, fail: Exception | None = None) -> None:
        self.codes: list[str] = []
        self.fail = fail
        self._lock = threading.Lock()

    def authorize_device(self, user_code: str) -> None:
        with self._lock:
            self.codes.append(user_code)
        if self.fail is not None:
            raise self.fail


def _device_mocks(rsps: responses.RequestsMock, access: str = "acc-1") -> None:
    rsps.add(responses.POST, OAUTH_DEVICE_CODE, json={"device_code": "dev-1", "user_code": "ABCD1234"}, status=200)
    rsps.add(
        responses.POST,
        OAUTH_DEVICE_TOKEN,
        json={"access_token": access, "refresh_token": "ref-1", "created_at": 1000, "expires_in": 7776000},
        status=200,
    )


def test_device_flow_on_first_request_signs_it() -> None:
    approver = FakeApprover()
    stored: list[TokenState] = []
    s = requests.Session()
    s.auth = TraktAuth(AuthClient("cid", "csecret"), approver, on_token=stored.append, clock=lambda: 2000)

    with responses.RequestsMock() as rsps:
        _device_mocks(rsps)
        rsps.add(responses.GET, API_URL, json={"username": "alice"}, status=200)

        r = s.get(API_URL)
        assert r.status_code == 200

        token_req = json.loads(rsps.calls[1].request.body)
        assert token_req == {
            "client_id": "cid",
            "client_secret": "csecret",
            "grant_type": "authorization_code",
            "code": "dev-1",
        }
        api_req = rsps.calls[2].request
        assert api_req.headers["Authorization"] == "Bearer acc-1"
        assert api_req.headers["trakt-api-key"] == "cid"
        assert api_req.headers["trakt-api-version"] == "2"

    assert approver.codes == ["ABCD1234"]
    assert stored == [TokenState("acc-1", "ref-1", 1000 + 7776000)]


def test_valid_token_is_used_as_is() -> None:
    tok = TokenState("acc-0", "ref-0", expires_at=5000)
    auth = TraktAuth(AuthClient("cid", "cs"), FakeApprover(), token=tok, clock=lambda: 4999)
    with responses.RequestsMock():
        assert auth.ensure_token() is tok


def test_expired_token_is_refreshed() -> None:
    tok = TokenState("acc-0", "ref-0", expires_at=100)
    stored: list[TokenState] = []
    approver = FakeApprover()
    auth = TraktAuth(AuthClient("cid", "cs"), approver, token=tok, on_token=stored.append, clock=lambda: 101)

    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            OAUTH_DEVICE_TOKEN,
            json={"access_token": "acc-2", "refresh_token": "ref-2", "created_at": 101, "expires_in": 60},
            status=200,
        )
        new = auth.ensure_token()
        body = json.loads(rsps.calls[0].request.body)

    assert body["grant_type"] == "refresh_token"
    assert body["refresh_token"] == "ref-0"
    assert "code" not in body
    assert new == TokenState("acc-2", "ref-2", 161)
    assert stored == [new]
    assert approver.codes == []


def test_expiry_boundary_is_strict() -> None:
    tok = TokenState("a", "r", expires_at=100)
    assert tok.expired(101)
    assert not tok.expired(100)


def test_concurrent_first_requests_run_one_device_flow() -> None:
    approver = FakeApprover()
    auth = TraktAuth(AuthClient("cid", "cs"), approver, clock=lambda: 2000)
    results: list[TokenState] = []
    errors: list[BaseException] = []

    def worker() -> None:
        try:
            results.append(auth.ensure_token())
        except BaseException as e:  # surfaced through the assertion below
            errors.append(e)

    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        _device_mocks(rsps)
        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        device_code_calls = [c for c in rsps.calls if c.request.url == OAUTH_DEVICE_CODE]

    assert errors == []
    assert len(results) == 8
    assert {r.access_token for r in results} == {"acc-1"}
    assert len(device_code_calls) == 1
    assert approver.codes == ["ABCD1234"]


def test_approver_network_failure_becomes_auth_error() -> None:
    approver = FakeApprover(fail=requests.ConnectionError("trakt.tv unreachable"))
    auth = TraktAuth(AuthClient("cid", "cs"), approver)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, OAUTH_DEVICE_CODE, json={"device_code": "d", "user_code": "u"}, status=200)
        with pytest.raises(AuthError):
            auth.ensure_token()


def test_token_endpoint_rejection_surfaces_status() -> None:
    client = AuthClient("cid", "cs")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, OAUTH_DEVICE_TOKEN, json={"error": "invalid_grant"}, status=401)
        with pytest.raises(UnexpectedStatusCodeError) as ei:
            client.exchange_refresh_token("stale")
    assert ei.value.got == 401


def test_token_round_trips_through_config() -> None:
    cfg: dict = {"trakt": {"client_id": "cid"}}
    saved: list[dict] = []
    token_saver(cfg, saved.append)(TokenState("acc", "ref", 42))
    assert saved == [{"access_token": "acc", "refresh_token": "ref", "expires_at": 42}]
    assert token_from_config(cfg) == TokenState("acc", "ref", 42)
    assert token_from_config({"trakt": {}}) is None


def test_stored_tokens_leave_runtime_overrides_off_disk(config_base: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_file = config_base / "config.json"
    cfg_file.write_text(json.dumps({"trakt": {"client_id": "cid"}, "sync": {"mode": "dry-run"}}), encoding="utf-8")
    monkeypatch.setenv("WB_TRAKT_PASSWORD", "env-only-secret")
    monkeypatch.setenv("WB_SYNC_MODE", "full")

    cfg = load_config()
    cfg["sync"]["mode"] = "add-only"
    token_saver(cfg, save_trakt_tokens)(TokenState("acc", "ref", 123))

    on_disk = json.loads(cfg_file.read_text(encoding="utf-8"))
    assert on_disk == {
        "trakt": {"client_id": "cid", "access_token": "acc", "refresh_token": "ref", "expires_at": 123},
        "sync": {"mode": "dry-run"},
    }
    assert cfg["trakt"]["access_token"] == "acc"
    assert cfg["trakt"]["password"] == "env-only-secret"


def test_stored_tokens_create_missing_config(config_base: Path) -> None:
    save_trakt_tokens({"access_token": "acc", "refresh_token": "ref", "expires_at": 5})
    on_disk = json.loads((config_base / "config.json").read_text(encoding="utf-8"))
    assert on_disk == {"trakt": {"access_token": "acc", "refresh_token": "ref", "expires_at": 5}}
