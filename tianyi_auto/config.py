"""Configuration constants and validated runtime settings for tianyi-auto."""

import os
import urllib.parse
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

if TYPE_CHECKING:
    from .schedule import CronSchedule, IntervalSchedule

# Credentials can also be supplied via ROUTER_USER / ROUTER_PASSWORD env vars
DEFAULT_HOST = os.environ.get("ROUTER_HOST", "http://192.168.1.1")
DEFAULT_USER = os.environ.get("ROUTER_USER", "useradmin")
DEFAULT_PASSWORD = os.environ.get("ROUTER_PASSWORD", "")
DEFAULT_DEVICE = os.environ.get("ROUTER_DEVICE", "zte")
# Local time. Default: every Monday at 04:00
DEFAULT_SCHEDULE = os.environ.get("ROUTER_SCHEDULE", "0 4 * * Mon")

LOGIN_PATH     = "/"
REBOOT_PATH    = "/common_page/gatewayManage.lua"
REBOOT_REFERER = "/common_page/main.lp"
LOGIN_TOKEN    = "5"

REQUEST_TIMEOUT     = 10     # seconds per login request
MAX_RETRIES         = 3      # retries per tick, transient failures only
BACKOFF_BASE        = 2.0    # seconds before the first retry
BACKOFF_MAX         = 60.0   # cap for exponential backoff
DEADLINE_MARGIN     = 5.0    # seconds a retry sequence may spill past the next tick
MAX_REDIRECTS       = 4


class ConfigError(Exception):
    """Invalid or missing startup configuration. Fatal before the first tick."""


@dataclass(frozen=True)
class Credentials:
    base_url: str
    username: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class Settings:
    """Everything the process needs, validated once at startup."""

    credentials: Credentials
    schedule: "IntervalSchedule | CronSchedule"
    timezone: tzinfo
    device: str = "zte"
    login_path: str = LOGIN_PATH
    reboot_path: str = REBOOT_PATH
    reboot_referer: str = REBOOT_REFERER
    login_token: str = LOGIN_TOKEN
    frashnum: str = ""
    reboot_timestamp: bool = True
    reboot: bool = False
    timeout: float = REQUEST_TIMEOUT
    max_retries: int = MAX_RETRIES
    backoff_base: float = BACKOFF_BASE
    backoff_max: float = BACKOFF_MAX
    run_now: bool = False
    verify_ssl: bool = True


def system_timezone() -> tzinfo:
    """Return the process's local timezone, preferring an IANA zone."""
    local_tz = datetime.now().astimezone().tzinfo
    if isinstance(local_tz, ZoneInfo):
        return local_tz
    tz_name = os.environ.get("TZ")
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return local_tz or ZoneInfo("UTC")


def parse_timezone(name: str | None) -> tzinfo:
    if not name:
        return system_timezone()
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"unknown timezone {name!r}") from exc


def validate_base_url(host: str) -> str:
    """
    Normalise the router address to ``scheme://host[:port]``.

    A bare host such as ``192.168.1.1`` is accepted and gets ``http://``.
    """
    if not host:
        raise ConfigError("router host is empty")
    if "://" not in host:
        host = "http://" + host
    parsed = urllib.parse.urlsplit(host)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ConfigError(f"invalid host URL {host!r}")
    return f"{parsed.scheme}://{parsed.netloc}"


def load_settings(args) -> Settings:
    """
    Build :class:`Settings` from a parsed argparse namespace.

    Raises ConfigError for anything that would make the first tick
    impossible: missing credentials, unparseable schedule, a request timeout
    that does not fit between two ticks, and so on.
    """
    # Imported here to keep config importable from schedule and auth.
    from .auth.strategy import get_strategy
    from .schedule import min_interval, parse_schedule

    if not args.password:
        raise ConfigError(
            "router password missing (use --password or ROUTER_PASSWORD)"
        )
    if not args.username:
        raise ConfigError("router username is empty")

    credentials = Credentials(
        base_url=validate_base_url(args.host),
        username=args.username,
        secret=args.password,
    )
    tz = parse_timezone(args.timezone)
    schedule = parse_schedule(args.schedule, tz)

    if args.timeout_secs <= 0:
        raise ConfigError("--timeout-secs must be positive")
    gap = min_interval(schedule)
    if timedelta(seconds=args.timeout_secs) >= gap:
        raise ConfigError(
            f"request timeout ({args.timeout_secs}s) must be shorter than the "
            f"minimum gap between runs ({gap.total_seconds():.0f}s)"
        )
    if args.max_retries < 0:
        raise ConfigError("--max-retries must be >= 0")
    if args.backoff_secs < 0 or args.max_backoff_secs < 0:
        raise ConfigError("backoff delays must be >= 0")

    strategy = get_strategy(args.device)
    if args.reboot and not strategy.supports_reboot:
        raise ConfigError(f"device {args.device!r} does not support --reboot")

    return Settings(
        credentials=credentials,
        schedule=schedule,
        timezone=tz,
        device=args.device,
        login_path=args.login_path,
        reboot_path=args.reboot_path,
        reboot_referer=args.reboot_referer,
        login_token=args.login_token,
        frashnum=args.frashnum,
        reboot_timestamp=args.reboot_timestamp,
        reboot=args.reboot,
        timeout=float(args.timeout_secs),
        max_retries=args.max_retries,
        backoff_base=args.backoff_secs,
        backoff_max=args.max_backoff_secs,
        run_now=args.run_now,
        verify_ssl=args.verify_ssl,
    )
