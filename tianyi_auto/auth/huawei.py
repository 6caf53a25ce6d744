"""Login for the Huawei HG8145V5 admin interface."""

import re
import urllib.parse

import requests

from ..config import Credentials
from ..logging_setup import log
from ..network.client import build_url, read_body, remaining
from ..outcome import AttemptOutcome, AuthRejected, Success, UnexpectedResponse
from .password import b64encode_password
from .strategy import LoginStrategy, ProtocolError, register

LOGIN_CGI      = "/login.cgi"
RAND_COUNT_URL = "/asp/GetRandCount.asp"

# The login form is served again when the credentials were refused
_LOGIN_MARKERS = ("txt_Username", "txt_Password", "loginbutton")

# login.cgi always answers 200 with a JavaScript redirect to the admin home,
# e.g.  var pageName = '/'; top.location.replace(pageName);
_JS_REDIRECT_RE = re.compile(
    r"""var\s+pageName\s*=\s*['"]([^'"]+)['"]|top\.location(?:\.replace)?\s*\(\s*['"]([^'"]+)['"]\s*\)""",
    re.I,
)


def get_rand_token(session: requests.Session, base: str, deadline: float) -> str:
    """
    POST to /asp/GetRandCount.asp to obtain the one-time anti-CSRF token
    used as 'x.X_HW_Token' in the login form.

    Shares the login attempt's monotonic *deadline*.
    """
    resp = session.post(
        build_url(base, RAND_COUNT_URL), timeout=remaining(deadline), stream=True
    )
    read_body(resp, deadline)
    if resp.status_code != 200:
        raise ProtocolError(f"GetRandCount returned HTTP {resp.status_code}")
    token = resp.text.strip()
    if not token:
        raise ProtocolError("GetRandCount returned an empty token")
    log.debug("X_HW_Token: %s", token)
    return token


@register
class HuaweiLoginStrategy(LoginStrategy):
    """
    Base64 login used by most HG8145V5 configurations (e.g. MEGACABLE2):

      POST /asp/GetRandCount.asp  → CSRF token
      POST /login.cgi  UserName / base64(Password) / Language / x.X_HW_Token
    """

    name = "huawei"

    def build_login_request(
        self, session: requests.Session, credentials: Credentials, deadline: float
    ) -> requests.Request:
        host = urllib.parse.urlsplit(credentials.base_url).hostname
        # Mimic what the login page JS does before submitting:
        #   document.cookie = "Cookie=body:Language:english:id=-1;path=/";
        session.cookies.set(
            "Cookie",
            "body:Language:english:id=-1",
            domain=host,
            path="/",
        )
        token = get_rand_token(session, credentials.base_url, deadline)
        payload = {
            "UserName": credentials.username,
            "PassWord": b64encode_password(credentials.secret),
            "Language": "english",
            "x.X_HW_Token": token,
        }
        return requests.Request("POST", build_url(credentials.base_url, LOGIN_CGI), data=payload)

    def interpret(self, response: requests.Response) -> AttemptOutcome:
        status = response.status_code
        if status in (401, 403):
            return AuthRejected(f"HTTP {status}")
        if status != 200:
            return UnexpectedResponse(f"HTTP {status} from login.cgi")

        if any(marker in response.text for marker in _LOGIN_MARKERS):
            return AuthRejected("router returned the login form")

        m = _JS_REDIRECT_RE.search(response.text)
        if not m:
            return UnexpectedResponse("no post-login redirect in login.cgi response")
        redirect_path = next((g for g in m.groups() if g), "/")
        return Success(f"redirect to {redirect_path}")
