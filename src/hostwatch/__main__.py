"""
Entry point for the hostwatch CLI.

Usage:
    hostwatch             Run the monitor service
    hostwatch --run-once  Run one sampling cycle and exit
    hostwatch --test      Validate configuration, token and sensors, then exit
    hostwatch --help      Show help message
    hostwatch --version   Show version and exit

Exit Codes:
    0 - Success
    1 - Configuration error (invalid settings, missing required values)
    2 - Connection error (cannot reach Discord)
    3 - Authentication error (invalid bot token)
"""

from __future__ import annotations

import argparse
import signal
import sys
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from types import FrameType

    from hostwatch.config import HostwatchSettings
    from hostwatch.metrics import HostMetricSource
    from hostwatch.scheduler import ScheduledRunner

from hostwatch import __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_CONNECTION_ERROR = 2
EXIT_AUTH_ERROR = 3


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="hostwatch",
        description="Edge-triggered host resource alerts delivered by Discord DM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   Success
  1   Configuration error
  2   Connection error (cannot reach Discord)
  3   Authentication error (invalid bot token)

Environment Variables:
  CONFIG_PATH                    Path to YAML configuration file
  HOSTWATCH_DISCORD_TOKEN        Discord bot token
  HOSTWATCH_DISCORD_TOKEN_FILE   Path to file containing the token (Docker secrets)
  HOSTWATCH_RECIPIENT_ID         Discord user ID that receives alerts
  HOSTWATCH_TEMP_THRESHOLD       Temperature threshold in Celsius (default: 85)
  HOSTWATCH_CPU_THRESHOLD        CPU usage threshold in percent (default: 80)
  HOSTWATCH_POWER_THRESHOLD      Power increase over baseline in percent (default: 30)
  HOSTWATCH_CHECK_INTERVAL_MS    Sampling interval in milliseconds (default: 30000)
  HOSTWATCH_STATE_FILE           Alert state file (default: .bot_state.json)
  HOSTWATCH_POWER_SOURCE         auto, rapl or estimate (default: auto)
  HOSTWATCH_LOG_LEVEL            Logging level: DEBUG, INFO, WARNING, ERROR
  HOSTWATCH_LOG_FORMAT           Log format: json or text

Examples:
  # Run with config file
  CONFIG_PATH=/etc/hostwatch/config.yaml hostwatch

  # Check token and sensors
  hostwatch --test
""",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Validate configuration, bot token and sensors, then exit",
    )
    parser.add_argument(
        "--run-once",
        action="store_true",
        help="Run one sampling cycle immediately and exit",
    )
    return parser.parse_args(argv)


def print_banner(
    config: "HostwatchSettings",
    source: Optional["HostMetricSource"] = None,
) -> None:
    """Print startup banner with version and configuration summary."""
    lines = [
        "",
        f"hostwatch v{__version__}",
        "=" * 40,
        f"Recipient:      {config.recipient_id}",
        f"Check Interval: {config.check_interval_ms}ms",
        f"Thresholds:     {config.temp_threshold}°C / {config.cpu_threshold}% CPU / "
        f"+{config.power_threshold}% power",
        f"State File:     {config.state_file}",
    ]
    if source is not None:
        lines.append(f"Power Source:   {source.power_method}")
    lines.extend([
        f"Log Level:      {config.log_level}",
        f"Log Format:     {config.log_format}",
        "=" * 40,
        "",
    ])

    for line in lines:
        print(line)


def build_monitor(config: "HostwatchSettings") -> Any:
    """Wire source, notifier, store and engine from settings."""
    from hostwatch.engine import HysteresisEngine, Thresholds
    from hostwatch.metrics import probe_metric_source
    from hostwatch.notify import DiscordNotifier
    from hostwatch.scheduler import Monitor
    from hostwatch.state import StateStore

    notifier = DiscordNotifier(
        token=config.discord_token,
        recipient_id=config.recipient_id,
        command_prefix=config.command_prefix,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )
    return Monitor(
        source=probe_metric_source(config),
        notifier=notifier,
        store=StateStore(config.state_file),
        engine=HysteresisEngine(Thresholds.from_settings(config)),
        metric_timeout=config.metric_timeout,
    )


def install_shutdown_handler(runner: "ScheduledRunner", log: Any) -> None:
    """Stop the scheduler cleanly on SIGTERM (docker stop, systemd)."""

    def handle_sigterm(signum: int, frame: Optional[FrameType]) -> None:
        log.info("received_sigterm", action="shutting down")
        runner.shutdown(wait=False)

    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, handle_sigterm)


def main(argv: Optional[list] = None) -> int:
    """Main entry point for hostwatch.

    Returns:
        Exit code (0=success, 1=config error, 2=connection error, 3=auth error)
    """
    args = parse_args(argv)

    # Import here to allow --help without dependencies
    from hostwatch.config.loader import ConfigurationError, load_config
    from hostwatch.health import HealthStatus, clear_health_status, update_health_status
    from hostwatch.logging import configure_logging, get_logger
    from hostwatch.notify import AuthenticationError, ConnectionError, NotifierError
    from hostwatch.notify.formatter import STARTUP_MESSAGE
    from hostwatch.scheduler import ScheduledRunner

    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except SystemExit as e:
        # Validation errors cause sys.exit(1) in loader
        return e.code if isinstance(e.code, int) else EXIT_CONFIG_ERROR

    configure_logging(log_format=config.log_format, log_level=config.log_level)
    log = get_logger()

    monitor = build_monitor(config)

    # Test mode: verify token and take one reading, then exit
    if args.test:
        print_banner(config, monitor.source)
        try:
            bot = monitor.notifier.verify()
            print(f"Bot user: {bot.get('username')}")
            reading = monitor.read_metrics()
            print(f"Reading:  {reading.summary()}")
            print("Configuration, token and sensors: OK")
            return EXIT_SUCCESS
        except AuthenticationError as e:
            log.error("authentication_failed", error=e.message)
            print(f"\nAuthentication error: {e}", file=sys.stderr)
            return EXIT_AUTH_ERROR
        except ConnectionError as e:
            log.error("connection_failed", error=e.message)
            print(f"\nConnection error: {e}", file=sys.stderr)
            return EXIT_CONNECTION_ERROR
        except Exception as e:
            log.error("test_failed", error=str(e))
            print(f"\nTest failed: {e}", file=sys.stderr)
            return EXIT_CONFIG_ERROR
        finally:
            monitor.close()
            monitor.notifier.close()

    # Run-once mode: one tick and exit
    if args.run_once:
        print_banner(config, monitor.source)
        log.info("run_once_mode", message="Running single sampling cycle")
        try:
            monitor.start()
            evaluation = monitor.tick()
            return EXIT_SUCCESS if evaluation is not None else EXIT_CONFIG_ERROR
        finally:
            monitor.close()
            monitor.notifier.close()
            clear_health_status()

    # Normal mode
    print_banner(config, monitor.source)
    log.info("starting", version=__version__)
    update_health_status(HealthStatus.STARTING)

    try:
        monitor.notifier.verify()
    except AuthenticationError as e:
        # The only fatal error: the transport cannot log in
        log.error("authentication_failed", error=e.message)
        print(f"\nAuthentication error: {e}", file=sys.stderr)
        clear_health_status()
        return EXIT_AUTH_ERROR
    except NotifierError as e:
        log.warning("discord_unreachable", error=e.message, message="Continuing, alerts will retry")

    if config.send_startup_message:
        monitor.notifier.send_text(STARTUP_MESSAGE)

    monitor.start()
    runner = ScheduledRunner()
    install_shutdown_handler(runner, log)

    log.info(
        "service_starting",
        recipient_id=config.recipient_id,
        check_interval_ms=config.check_interval_ms,
        command_poll_interval=config.command_poll_interval,
    )

    try:
        runner.run(
            tick=monitor.tick,
            interval_seconds=config.check_interval_seconds,
            poll=monitor.poll_commands,
            poll_interval_seconds=config.command_poll_interval,
        )
    finally:
        monitor.close()
        monitor.notifier.close()
        clear_health_status()
        log.info("shutdown", reason="scheduler stopped")
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
