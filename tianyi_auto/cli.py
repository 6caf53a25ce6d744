"""
Command-line interface for tianyi-auto.

Provides argument parsing, signal handling and the main execution flow.
"""

import argparse
import signal
import sys
import threading

from tianyi_auto.auth import SessionClient, get_strategy
from tianyi_auto.config import (
    BACKOFF_BASE,
    BACKOFF_MAX,
    DEFAULT_DEVICE,
    DEFAULT_HOST,
    DEFAULT_PASSWORD,
    DEFAULT_SCHEDULE,
    DEFAULT_USER,
    LOGIN_PATH,
    LOGIN_TOKEN,
    MAX_RETRIES,
    REBOOT_PATH,
    REBOOT_REFERER,
    REQUEST_TIMEOUT,
    ConfigError,
    Settings,
    load_settings,
)
from tianyi_auto.logging_setup import log, setup_logging
from tianyi_auto.retry import RetryPolicy
from tianyi_auto.runner import Runner
from tianyi_auto.schedule import Scheduler


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tianyi-auto",
        description="Log in to a Tianyi/ZTE (or Huawei) router on a schedule, "
                    "optionally rebooting it afterwards.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Password can also be provided via the ROUTER_PASSWORD env var.\n"
            "Schedules: 'every 30 minutes' or a cron expression such as\n"
            "'0 4 * * Mon', evaluated in the local timezone (TZ)."
        ),
    )
    parser.add_argument(
        "--host", default=DEFAULT_HOST,
        help=f"Router base URL, with scheme (default: {DEFAULT_HOST})",
    )
    parser.add_argument(
        "--username", "--user", default=DEFAULT_USER,
        help=f"Router username (default: {DEFAULT_USER})",
    )
    parser.add_argument(
        "--password", default=DEFAULT_PASSWORD,
        help="Router password (overrides ROUTER_PASSWORD env var)",
    )
    parser.add_argument(
        "--device", default=DEFAULT_DEVICE, choices=("zte", "huawei"),
        help=f"Router firmware family (default: {DEFAULT_DEVICE})",
    )
    parser.add_argument("--login-path", default=LOGIN_PATH, help="Login path")
    parser.add_argument("--reboot-path", default=REBOOT_PATH, help="Reboot path")
    parser.add_argument(
        "--reboot-referer", default=REBOOT_REFERER, help="Referer for reboot",
    )
    parser.add_argument("--login-token", default=LOGIN_TOKEN, help="Login token value")
    parser.add_argument("--frashnum", default="", help="frashnum value")
    parser.add_argument(
        "--no-reboot-timestamp", dest="reboot_timestamp",
        action="store_false", default=True,
        help="Do not add a timeStamp query param to the reboot request",
    )
    parser.add_argument(
        "--reboot", action="store_true", default=False,
        help="Send the reboot command after every successful login",
    )
    parser.add_argument(
        "--schedule", "--cron", default=DEFAULT_SCHEDULE,
        help=f"When to run, local time (default: '{DEFAULT_SCHEDULE}')",
    )
    parser.add_argument(
        "--timezone", default=None,
        help="IANA timezone for the schedule (default: TZ / system zone)",
    )
    parser.add_argument(
        "--timeout-secs", type=float, default=REQUEST_TIMEOUT,
        help=f"Request timeout in seconds (default: {REQUEST_TIMEOUT})",
    )
    parser.add_argument(
        "--max-retries", type=int, default=MAX_RETRIES,
        help=f"Retries per run on network errors (default: {MAX_RETRIES})",
    )
    parser.add_argument(
        "--backoff-secs", type=float, default=BACKOFF_BASE,
        help=f"Delay before the first retry, doubled each time (default: {BACKOFF_BASE})",
    )
    parser.add_argument(
        "--max-backoff-secs", type=float, default=BACKOFF_MAX,
        help=f"Upper bound for the retry delay (default: {BACKOFF_MAX})",
    )
    parser.add_argument(
        "--run-now", action="store_true", default=False,
        help="Run once immediately on start",
    )
    parser.add_argument(
        "--no-verify-ssl", dest="verify_ssl", action="store_false", default=True,
        help="Disable TLS certificate verification (use for self-signed certs)",
    )
    parser.add_argument(
        "--debug", "-v", action="store_true",
        help="Enable verbose debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file (always at DEBUG level)",
    )
    return parser.parse_args(argv)


def build_runner(settings: Settings, stop_event: threading.Event) -> Runner:
    """Wire the scheduler, retry policy and session client together."""
    strategy = get_strategy(settings.device).from_settings(settings)
    client = SessionClient(
        settings.credentials,
        strategy,
        timeout=settings.timeout,
        verify_ssl=settings.verify_ssl,
    )
    scheduler = Scheduler(settings.schedule, stop_event=stop_event)
    retry_policy = RetryPolicy(
        max_retries=settings.max_retries,
        base_delay=settings.backoff_base,
        max_delay=settings.backoff_max,
        attempt_timeout=settings.timeout,
        stop_event=stop_event,
        clock=scheduler.clock,
    )
    return Runner(
        scheduler,
        retry_policy,
        client.attempt,
        after_success=client.reboot if settings.reboot else None,
    )


def install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum, _frame):
        log.info("Received %s, shutting down…", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the tianyi-auto CLI.
    """
    args = parse_args(argv)

    setup_logging(debug=args.debug, log_file=args.log_file)

    try:
        settings = load_settings(args)
    except ConfigError as exc:
        sys.exit(f"Configuration error: {exc}")

    if not settings.verify_ssl:
        import urllib3
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        log.warning("TLS certificate verification is DISABLED (--no-verify-ssl)")

    log.info(
        "Logging in to %s as %s (%s), schedule %s",
        settings.credentials.base_url,
        settings.credentials.username,
        settings.device,
        settings.schedule,
    )

    stop_event = threading.Event()
    install_signal_handlers(stop_event)
    runner = build_runner(settings, stop_event)
    try:
        runner.run_forever(run_now=settings.run_now)
    except ConfigError as exc:
        sys.exit(f"Configuration error: {exc}")


if __name__ == "__main__":
    main()
