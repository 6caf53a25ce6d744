"""
tianyi_auto
===========
Keep a home router's web session alive by logging in on a schedule, and
optionally reboot it right after (Tianyi/ZTE gateways, Huawei HG8145V5).

Package structure
-----------------
tianyi_auto/
├── __init__.py       – package init and public API
├── __main__.py       – ``python -m tianyi_auto``
├── config.py         – constants, Credentials, Settings, ConfigError
├── outcome.py        – AttemptOutcome variants and RunRecord
├── schedule.py       – interval / cron schedules and the sleeping Scheduler
├── retry.py          – RetryPolicy (backoff for transient failures only)
├── runner.py         – per-tick orchestration and the main loop
├── logging_setup.py  – colorlog setup and the RunRecord sink
├── cli.py            – argparse CLI, signal handling
├── network/          – requests.Session factory and URL helpers
└── auth/             – device login strategies and SessionClient
    ├── strategy.py   – LoginStrategy interface and registry
    ├── zte.py        – Tianyi/ZTE form login + reboot command
    ├── huawei.py     – HG8145V5 token + base64 login
    ├── password.py   – password encoding
    └── client.py     – SessionClient.attempt()

Quick start
-----------
    import threading
    from datetime import datetime
    from zoneinfo import ZoneInfo

    from tianyi_auto import (
        Credentials, RetryPolicy, Runner, Scheduler, SessionClient,
        ZteLoginStrategy, parse_schedule,
    )

    creds = Credentials("http://192.168.1.1", "useradmin", "your_password")
    client = SessionClient(creds, ZteLoginStrategy())
    stop = threading.Event()
    scheduler = Scheduler(parse_schedule("every 30 minutes", ZoneInfo("Asia/Shanghai")), stop)
    Runner(scheduler, RetryPolicy(stop_event=stop), client.attempt).run_forever()
"""

from .config import ConfigError, Credentials, Settings, load_settings
from .outcome import (
    AttemptOutcome,
    AuthRejected,
    RunRecord,
    Success,
    TransientError,
    UnexpectedResponse,
)
from .schedule import CronSchedule, IntervalSchedule, Scheduler, ScheduleError, parse_schedule
from .retry import RetryPolicy, RetryResult
from .auth import HuaweiLoginStrategy, LoginStrategy, SessionClient, ZteLoginStrategy, get_strategy
from .runner import Runner, RunnerState

__all__ = [
    "ConfigError",
    "Credentials",
    "Settings",
    "load_settings",
    "AttemptOutcome",
    "AuthRejected",
    "RunRecord",
    "Success",
    "TransientError",
    "UnexpectedResponse",
    "CronSchedule",
    "IntervalSchedule",
    "Scheduler",
    "ScheduleError",
    "parse_schedule",
    "RetryPolicy",
    "RetryResult",
    "HuaweiLoginStrategy",
    "LoginStrategy",
    "SessionClient",
    "ZteLoginStrategy",
    "get_strategy",
    "Runner",
    "RunnerState",
]
