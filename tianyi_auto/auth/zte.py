"""Login and reboot for Tianyi / ZTE home gateways."""

import json
import time

import requests

from ..config import LOGIN_PATH, LOGIN_TOKEN, REBOOT_PATH, REBOOT_REFERER, Credentials
from ..logging_setup import log
from ..network.client import build_url, origin_of
from ..outcome import AttemptOutcome, AuthRejected, Success, UnexpectedResponse
from .strategy import LoginStrategy, register

# Strings the gateway puts in the re-rendered login page when the
# credentials were refused or the account is temporarily locked.
_REJECT_MARKERS = (
    "User information is error",
    "Username or password is incorrect",
    "loginErrMsg",
    "lockingTime",
)

_REBOOT_PAYLOAD = json.dumps(
    {"RPCMethod": "Post", "Parameter": {"CmdType": "HG_COMMAND_REBOOT"}},
    separators=(",", ":"),
)


@register
class ZteLoginStrategy(LoginStrategy):
    """
    Form login used by the ZTE firmware shipped on Tianyi gateways.

      POST <login_path>  frashnum / action=login / Frm_Logintoken / user_name / Password

    The gateway answers 200 with the admin frame on success and re-renders
    the login page with an error message on failure.
    """

    name = "zte"
    supports_reboot = True

    def __init__(
        self,
        login_path: str = LOGIN_PATH,
        login_token: str = LOGIN_TOKEN,
        frashnum: str = "",
        reboot_path: str = REBOOT_PATH,
        reboot_referer: str = REBOOT_REFERER,
        reboot_timestamp: bool = True,
        reject_markers: tuple[str, ...] = _REJECT_MARKERS,
    ) -> None:
        self.login_path = login_path
        self.login_token = login_token
        self.frashnum = frashnum
        self.reboot_path = reboot_path
        self.reboot_referer = reboot_referer
        self.reboot_timestamp = reboot_timestamp
        self.reject_markers = reject_markers

    @classmethod
    def from_settings(cls, settings) -> "ZteLoginStrategy":
        return cls(
            login_path=settings.login_path,
            login_token=settings.login_token,
            frashnum=settings.frashnum,
            reboot_path=settings.reboot_path,
            reboot_referer=settings.reboot_referer,
            reboot_timestamp=settings.reboot_timestamp,
        )

    def build_login_request(
        self, session: requests.Session, credentials: Credentials, deadline: float
    ) -> requests.Request:
        login_url = build_url(credentials.base_url, self.login_path)
        form = {
            "frashnum": self.frashnum,
            "action": "login",
            "Frm_Logintoken": self.login_token,
            "user_name": credentials.username,
            "Password": credentials.secret,
        }
        return requests.Request(
            "POST",
            login_url,
            data=form,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Origin": origin_of(login_url),
                "Upgrade-Insecure-Requests": "1",
                "Referer": login_url,
            },
        )

    def interpret(self, response: requests.Response) -> AttemptOutcome:
        status = response.status_code
        if status in (401, 403):
            return AuthRejected(f"HTTP {status}")
        if not 200 <= status < 300:
            return UnexpectedResponse(f"HTTP {status} from login page")

        marker = next((m for m in self.reject_markers if m in response.text), None)
        if marker:
            return AuthRejected(f"router reported {marker!r}")

        had_cookie = bool(response.cookies) or any(r.cookies for r in response.history)
        if not had_cookie:
            log.warning(
                "No cookies received from login; device may still accept "
                "commands without cookie."
            )
        else:
            log.debug("Login cookies captured.")
        return Success(f"HTTP {status}")

    def build_reboot_request(self, credentials: Credentials) -> requests.Request:
        reboot_url = build_url(credentials.base_url, self.reboot_path)
        params = {}
        if self.reboot_timestamp:
            params["timeStamp"] = str(int(time.time() * 1000))
        return requests.Request(
            "POST",
            reboot_url,
            params=params,
            data={"jsonCfg": _REBOOT_PAYLOAD},
            headers={
                "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
                "X-Requested-With": "XMLHttpRequest",
                "Accept": "application/json, text/javascript, */*; q=0.01",
                "Origin": origin_of(reboot_url),
                "Referer": build_url(credentials.base_url, self.reboot_referer),
            },
        )
