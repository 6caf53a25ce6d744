"""One login attempt against the router, classified into an AttemptOutcome."""

import time

import requests

from ..config import REQUEST_TIMEOUT, Credentials
from ..logging_setup import log
from ..network.client import build_session, read_body, remaining
from ..outcome import AttemptOutcome, TransientError, UnexpectedResponse
from .strategy import LoginStrategy, ProtocolError

# Failures where trying again a little later can reasonably succeed
_TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


def _describe(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}"


class SessionClient:
    """
    Owns the HTTP session used to talk to one router.

    ``attempt()`` sends exactly one login request and never retries. All of
    its traffic (token fetch, login, redirects, response bodies) shares a
    single deadline ``timeout`` seconds after the attempt starts, so one
    attempt cannot block the scheduler for longer than that.
    """

    def __init__(
        self,
        credentials: Credentials,
        strategy: LoginStrategy,
        timeout: float = REQUEST_TIMEOUT,
        session: requests.Session | None = None,
        verify_ssl: bool = True,
    ) -> None:
        self.credentials = credentials
        self.strategy = strategy
        self.timeout = timeout
        self.session = session if session is not None else build_session(verify_ssl)

    def attempt(self, credentials: Credentials | None = None) -> AttemptOutcome:
        credentials = credentials or self.credentials
        deadline = time.monotonic() + self.timeout
        # Start every login from a clean jar so a stale or half-open router
        # session cannot leak into the new one.
        self.session.cookies.clear()
        try:
            request = self.strategy.build_login_request(
                self.session, credentials, deadline
            )
            resp = self._send(request, deadline)
        except _TRANSIENT_ERRORS as exc:
            log.debug("Login transport failure: %s", _describe(exc))
            return TransientError(_describe(exc))
        except (requests.RequestException, ProtocolError) as exc:
            log.debug("Login protocol failure: %s", _describe(exc))
            return UnexpectedResponse(_describe(exc))

        log.debug("login status=%s url=%s", resp.status_code, resp.url)
        return self.strategy.interpret(resp)

    def reboot(self) -> None:
        """
        Send the reboot command on the current (logged-in) session.

        Raises requests.RequestException when the router does not accept it.
        """
        request = self.strategy.build_reboot_request(self.credentials)
        resp = self._send(request, time.monotonic() + self.timeout)
        log.debug("reboot status=%s", resp.status_code)
        resp.raise_for_status()

    def _send(self, request: requests.Request, deadline: float) -> requests.Response:
        resp = self.session.request(
            request.method,
            request.url,
            params=request.params or None,
            data=request.data or None,
            headers=request.headers or None,
            timeout=remaining(deadline),
            allow_redirects=False,
            stream=True,
        )
        read_body(resp, deadline)

        # Redirects are followed here rather than by requests so that every
        # hop gets only what is left of the deadline.
        history = []
        while resp.is_redirect:
            if len(history) >= self.session.max_redirects:
                raise requests.TooManyRedirects(
                    f"Exceeded {self.session.max_redirects} redirects.", response=resp
                )
            history.append(resp)
            next_request = next(
                self.session.resolve_redirects(resp, resp.request, yield_requests=True)
            )
            resp = self.session.send(
                next_request,
                timeout=remaining(deadline),
                allow_redirects=False,
                stream=True,
            )
            read_body(resp, deadline)
        resp.history = history
        return resp
