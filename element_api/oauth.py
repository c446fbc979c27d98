from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from element_api.errors import (
    MethodNotAllowed,
    MissingCode,
    MissingConfiguration,
    TokenExchangeFailed,
    TransportError,
)
from element_api.models import OAuthTokenResult

log = logging.getLogger(__name__)

WEBFLOW_CLIENT_ID = os.getenv("WEBFLOW_CLIENT_ID", "").strip()
WEBFLOW_CLIENT_SECRET = os.getenv("WEBFLOW_CLIENT_SECRET", "").strip()
WEBFLOW_REDIRECT_URI = os.getenv("WEBFLOW_REDIRECT_URI", "").strip()
WEBFLOW_SCOPES = os.getenv(
    "WEBFLOW_SCOPES",
    "sites:read sites:write assets:read assets:write cms:read cms:write forms:read",
).strip()

AUTHORIZE_ENDPOINT = "https://webflow.com/oauth/authorize"
TOKEN_ENDPOINT = "https://api.webflow.com/oauth/access_token"
USER_ENDPOINT = "https://api.webflow.com/user"

try:
    OAUTH_TIMEOUT_SECS = float(os.getenv("OAUTH_TIMEOUT_SECS", "30"))
except ValueError:
    OAUTH_TIMEOUT_SECS = 30.0


def build_authorize_url(state: Optional[str] = None) -> str:
    """URL that starts the login; the provider redirects back with ?code=&state=."""
    if not WEBFLOW_CLIENT_ID or not WEBFLOW_REDIRECT_URI:
        raise MissingConfiguration()
    params = {
        "response_type": "code",
        "client_id": WEBFLOW_CLIENT_ID,
        "redirect_uri": WEBFLOW_REDIRECT_URI,
        "scope": WEBFLOW_SCOPES,
        "state": state or str(int(time.time() * 1000)),
    }
    return f"{AUTHORIZE_ENDPOINT}?{urlencode(params)}"


def _json_body(resp: Any) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _log_profile(access_token: str) -> None:
    """Best-effort profile lookup, for the log line only. Never raises."""
    try:
        resp = requests.get(
            USER_ENDPOINT,
            headers={
                "Authorization": f"Bearer {access_token}",
                "accept-version": "1.0.0",
            },
            timeout=OAUTH_TIMEOUT_SECS,
        )
        if 200 <= resp.status_code < 300:
            data = resp.json()
            user = data.get("user", data) if isinstance(data, dict) else {}
            log.info("oauth: user authenticated email=%s", user.get("email") if isinstance(user, dict) else None)
        else:
            log.info("oauth: profile lookup returned HTTP %s", resp.status_code)
    except Exception as e:
        log.warning("oauth: profile lookup failed: %r", e)


def exchange_code(code: Optional[str], state: Optional[str] = None, method: str = "POST") -> OAuthTokenResult:
    """Trade an authorization code for an access token.

    Single attempt, no retries. Provider errors surface verbatim as
    TokenExchangeFailed; nothing on this path falls back silently.
    """
    if (method or "").upper() != "POST":
        raise MethodNotAllowed()
    if not code:
        raise MissingCode()
    if not (WEBFLOW_CLIENT_ID and WEBFLOW_CLIENT_SECRET and WEBFLOW_REDIRECT_URI):
        raise MissingConfiguration()

    form = {
        "client_id": WEBFLOW_CLIENT_ID,
        "client_secret": WEBFLOW_CLIENT_SECRET,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": WEBFLOW_REDIRECT_URI,
    }
    try:
        resp = requests.post(
            TOKEN_ENDPOINT,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=OAUTH_TIMEOUT_SECS,
        )
    except requests.RequestException as e:
        log.error("oauth: token request error: %r", e)
        raise TransportError(error_description=str(e)) from e

    if not 200 <= resp.status_code < 300:
        body = _json_body(resp)
        log.error("oauth: token exchange failed HTTP %s error=%s", resp.status_code, body.get("error"))
        raise TokenExchangeFailed(body.get("error") or None, body.get("error_description"))

    token = _json_body(resp)
    access_token = token.get("access_token")
    if not access_token:
        log.error("oauth: token response without access_token")
        raise TokenExchangeFailed(error_description="Provider response did not include an access token")

    _log_profile(access_token)

    return OAuthTokenResult(
        access_token=access_token,
        token_type=token.get("token_type") or "Bearer",
        scope=token.get("scope") or "",
        site_id=state,
    )
