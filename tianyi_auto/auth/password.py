"""Password encoding helpers."""

import base64


def b64encode_password(password: str) -> str:
    """
    Replicate the Huawei router's  base64encode(Password.value)  from util.js.
    Standard RFC 4648 Base64 over the UTF-8 bytes of the password string.
    """
    return base64.b64encode(password.encode("utf-8")).decode("ascii")
