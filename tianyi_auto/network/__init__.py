"""
Network operations module for HTTP client setup and URL helpers.
"""

from tianyi_auto.network.client import (
    build_session,
    build_url,
    origin_of,
    read_body,
    remaining,
)

__all__ = ["build_session", "build_url", "origin_of", "read_body", "remaining"]
