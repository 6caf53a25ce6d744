"""Authentication submodule – device login strategies and the session client."""

from tianyi_auto.auth.strategy import (
    STRATEGIES,
    LoginStrategy,
    ProtocolError,
    get_strategy,
)
from tianyi_auto.auth.zte import ZteLoginStrategy
from tianyi_auto.auth.huawei import HuaweiLoginStrategy, get_rand_token
from tianyi_auto.auth.password import b64encode_password
from tianyi_auto.auth.client import SessionClient

__all__ = [
    "STRATEGIES",
    "LoginStrategy",
    "ProtocolError",
    "get_strategy",
    "ZteLoginStrategy",
    "HuaweiLoginStrategy",
    "get_rand_token",
    "b64encode_password",
    "SessionClient",
]
