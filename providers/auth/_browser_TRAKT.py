# providers/auth/_browser_TRAKT.py
# WatchBridge - scripted trakt.tv web sign-in and device activation
# Copyright (c) 2025-2026 WatchBridge contributors
from __future__ import annotations

from typing import Any

import requests
from lxml import html

from _logging import log as _root_log
from providers.sync._mod_base import BrowserFlowError, UnexpectedStatusCodeError

__all__ = ["Browser", "WEB_BASE"]

WEB_BASE = "https://trakt.tv"
PATH_SIGN_IN = "/auth/signin"
PATH_ACTIVATE = "/activate"
PATH_ACTIVATE_AUTHORIZE = "/activate/authorize"

# XPath equivalents of the form selectors on the trakt.tv pages
X_SIGN_IN_TOKEN = "//*[@id='new_user']/input[@name='authenticity_token']/@value"
X_ACTIVATE_TOKEN = (
    "//*[@id='auth-form-wrapper']"
    "/form[contains(concat(' ', normalize-space(@class), ' '), ' form-signin ')]"
    "/input[@name='authenticity_token']/@value"
)
X_AUTHORIZE_TOKEN = (
    "//*[@id='auth-form-wrapper']"
    "/div[contains(concat(' ', normalize-space(@class), ' '), ' form-signin ')"
    " and contains(concat(' ', normalize-space(@class), ' '), ' less-top ')]"
    "/div/*[1][self::form]/*[1][self::input][@name='authenticity_token']/@value"
)
X_LOGOUT_LINK = "//a[@href='/logout']"

_FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}

log = _root_log.child("AUTH")


def _scrape_attr(text: str, xpath: str, what: str) -> str:
    doc = html.fromstring(text or "<html/>")
    found = doc.xpath(xpath)
    if not found or not str(found[0]).strip():
        raise BrowserFlowError(f"failure scraping trakt {what}: element not found")
    return str(found[0]).strip()


class Browser:
    """Cookie-carrying session that walks trakt.tv's sign-in and /activate forms."""

    def __init__(self, email: str, password: str, *, session: requests.Session | None = None, base_url: str = WEB_BASE):
        self.email = email
        self.password = password
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def _do(self, method: str, path: str, data: dict[str, Any] | None = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        if data is None:
            r = self.session.request(method, url)
        else:
            r = self.session.request(method, url, data=data, headers=_FORM_HEADERS)
        if r.status_code != 200:
            raise UnexpectedStatusCodeError(r.status_code, (200,))
        return r

    # step 1
    def browse_sign_in(self) -> str:
        r = self._do("GET", PATH_SIGN_IN)
        return _scrape_attr(r.text, X_SIGN_IN_TOKEN, "sign-in authenticity token")

    def sign_in(self, authenticity_token: str) -> None:
        r = self._do("POST", PATH_SIGN_IN, {
            "authenticity_token": authenticity_token,
            "user[login]": self.email,
            "user[password]": self.password,
            "user[remember_me]": "1",
        })
        if not html.fromstring(r.text or "<html/>").xpath(X_LOGOUT_LINK):
            raise BrowserFlowError("failure signing in to trakt.tv")

    # step 2
    def browse_activate(self) -> str:
        r = self._do("GET", PATH_ACTIVATE)
        return _scrape_attr(r.text, X_ACTIVATE_TOKEN, "activation authenticity token")

    def activate(self, user_code: str, authenticity_token: str) -> str:
        r = self._do("POST", PATH_ACTIVATE, {
            "authenticity_token": authenticity_token,
            "code": user_code,
            "commit": "Continue",
        })
        return _scrape_attr(r.text, X_AUTHORIZE_TOKEN, "authorization authenticity token")

    def activate_authorize(self, authenticity_token: str) -> None:
        r = self._do("POST", PATH_ACTIVATE_AUTHORIZE, {
            "authenticity_token": authenticity_token,
            "commit": "Yes",
        })
        doc = html.fromstring(r.text or "<html/>")
        if not doc.xpath(X_LOGOUT_LINK):
            raise BrowserFlowError("trakt device authorization did not complete: no signed-in session on result page")

    def authorize_device(self, user_code: str) -> None:
        """Sign in, submit the user code and approve the device."""
        log.info("signing in to trakt.tv to approve device code")
        self.sign_in(self.browse_sign_in())
        token = self.activate(user_code, self.browse_activate())
        self.activate_authorize(token)
        log.info("trakt.tv device approved")
