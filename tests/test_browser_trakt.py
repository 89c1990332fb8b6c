# WatchBridge test scripts
from __future__ import annotations

from urllib.parse import parse_qs

import pytest
import responses

from providers.auth._browser_TRAKT import WEB_BASE, Browser
from providers.sync._mod_base import BrowserFlowError, UnexpectedStatusCodeError

SIGN_IN_PAGE = """
<html><body>
<form id="new_user" action="/auth/signin" method="post">
  <input type="hidden" name="authenticity_token" value="tok-signin">
  <input name="user[login]">
</form>
</body></html>
"""

ACTIVATE_PAGE = """
<html><body><div id="auth-form-wrapper">
  <form class="form-signin" action="/activate" method="post">
    <input type="hidden" name="authenticity_token" value="tok-activate">
    <input name="code">
  </form>
</div></body></html>
"""

AUTHORIZE_PAGE = """
<html><body><div id="auth-form-wrapper">
  <div class="form-signin less-top">
    <div>
      <form action="/activate/authorize" method="post">
        <input type="hidden" name="authenticity_token" value="tok-authorize">
        <input type="submit" name="commit" value="Yes">
      </form>
      <form action="/activate/authorize" method="post">
        <input type="hidden" name="authenticity_token" value="tok-deny">
      </form>
    </div>
  </div>
</div></body></html>
"""

SIGNED_IN_PAGE = '<html><body><a href="/logout">Sign out</a></body></html>'
DONE_PAGE = '<html><body><a href="/logout">Sign out</a><p>Woohoo!</p></body></html>'


def _form(call) -> dict[str, list[str]]:
    body = call.request.body
    return parse_qs(body.decode() if isinstance(body, bytes) else body)


def test_authorize_device_walks_all_forms() -> None:
    b = Browser("me@example.test", "hunter2")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{WEB_BASE}/auth/signin", body=SIGN_IN_PAGE, status=200)
        rsps.add(responses.POST, f"{WEB_BASE}/auth/signin", body=SIGNED_IN_PAGE, status=200)
        rsps.add(responses.GET, f"{WEB_BASE}/activate", body=ACTIVATE_PAGE, status=200)
        rsps.add(responses.POST, f"{WEB_BASE}/activate", body=AUTHORIZE_PAGE, status=200)
        rsps.add(responses.POST, f"{WEB_BASE}/activate/authorize", body=DONE_PAGE, status=200)

        b.authorize_device("ABCD1234")

        sign_in = _form(rsps.calls[1])
        assert sign_in["authenticity_token"] == ["tok-signin"]
        assert sign_in["user[login]"] == ["me@example.test"]
        assert sign_in["user[password]"] == ["hunter2"]
        assert sign_in["user[remember_me]"] == ["1"]

        activate = _form(rsps.calls[3])
        assert activate == {"authenticity_token": ["tok-activate"], "code": ["ABCD1234"], "commit": ["Continue"]}

        authorize = _form(rsps.calls[4])
        assert authorize == {"authenticity_token": ["tok-authorize"], "commit": ["Yes"]}


def test_missing_token_element_is_a_flow_error() -> None:
    b = Browser("me@example.test", "pw")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{WEB_BASE}/auth/signin", body="<html><body>maintenance</body></html>", status=200)
        with pytest.raises(BrowserFlowError):
            b.browse_sign_in()


def test_authorize_without_signed_in_result_fails() -> None:
    b = Browser("me@example.test", "pw")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, f"{WEB_BASE}/activate/authorize", body="<html><body>denied</body></html>", status=200)
        with pytest.raises(BrowserFlowError):
            b.activate_authorize("tok")


def test_non_200_page_raises_status_error() -> None:
    b = Browser("me@example.test", "pw")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{WEB_BASE}/activate", body="", status=403)
        with pytest.raises(UnexpectedStatusCodeError) as ei:
            b.browse_activate()
    assert ei.value.got == 403
    assert ei.value.want == (200,)


def test_rejected_credentials_stop_at_sign_in() -> None:
    b = Browser("me@example.test", "wrong")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{WEB_BASE}/auth/signin", body=SIGN_IN_PAGE, status=200)
        rsps.add(responses.POST, f"{WEB_BASE}/auth/signin", body=SIGN_IN_PAGE, status=200)
        with pytest.raises(BrowserFlowError, match="failure signing in to trakt.tv"):
            b.authorize_device("ABCD1234")
        assert len(rsps.calls) == 2
