"""
Device-specific login encoding.

A LoginStrategy knows how one router firmware family expects the login
request to look and how to read its answer. SessionClient owns the HTTP
session and the error classification for network failures; everything
about paths, form fields and body markers lives here.
"""

from abc import ABC, abstractmethod

import requests

from ..config import ConfigError, Credentials
from ..outcome import AttemptOutcome

STRATEGIES: dict[str, type["LoginStrategy"]] = {}


class ProtocolError(Exception):
    """The router answered a preparatory request with something unusable."""


class LoginStrategy(ABC):
    name = ""
    supports_reboot = False

    @classmethod
    def from_settings(cls, settings) -> "LoginStrategy":
        return cls()

    @abstractmethod
    def build_login_request(
        self, session: requests.Session, credentials: Credentials, deadline: float
    ) -> requests.Request:
        """
        Return the single login request to send.

        May use *session* for preparatory, non-authenticating requests
        (e.g. fetching a CSRF token), which must finish before the
        ``time.monotonic()`` *deadline*, and raise ProtocolError if those fail.
        """

    @abstractmethod
    def interpret(self, response: requests.Response) -> AttemptOutcome:
        """Map the login response to AuthRejected, Success or UnexpectedResponse."""

    def build_reboot_request(self, credentials: Credentials) -> requests.Request:
        raise NotImplementedError(f"{self.name} does not support reboot")


def register(cls: type[LoginStrategy]) -> type[LoginStrategy]:
    STRATEGIES[cls.name] = cls
    return cls


def get_strategy(name: str) -> type[LoginStrategy]:
    try:
        return STRATEGIES[name]
    except KeyError:
        known = ", ".join(sorted(STRATEGIES))
        raise ConfigError(f"unknown device {name!r} (known: {known})") from None
