"""CLI entry point for benchmark runs.

Usage:
    hyperbench http --duration 60s --parallel 20
    hyperbench http --count 10000
    hyperbench mqtt --count 5000 --parallel 8
    python -m hyperbench mqtt --json-logs

Connection details and credentials come from the environment (or ``.env``);
flags override PARALLEL, COUNT and DURATION.
"""

import argparse
import sys
from collections.abc import Callable

import structlog

from hyperbench.config import (
    AppSettings,
    HttpSettings,
    MqttSettings,
    RunSettings,
    load_settings,
    parse_duration,
)
from hyperbench.controller import (
    CancelToken,
    CountLimit,
    Deadline,
    RunController,
    RunResult,
    Termination,
    interrupt_on_sigint,
)
from hyperbench.exceptions import HyperbenchError
from hyperbench.report import report
from hyperbench.shared.logging import setup_logging
from hyperbench.transports.http import (
    HttpRequestBuilder,
    HttpTransport,
    create_client,
    get_auth_token,
)
from hyperbench.transports.mqtt import MqttRequestBuilder, MqttTransport

logger = structlog.get_logger()


def _duration_arg(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hyperbench",
        description="Concurrent write-load benchmark for Hyperbase",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "transport",
        choices=["http", "mqtt"],
        help="Insert records over REST or publish them over MQTT",
    )
    parser.add_argument("--parallel", type=int, default=None, help="Worker count (PARALLEL)")
    limit = parser.add_mutually_exclusive_group()
    limit.add_argument("--count", type=int, default=None, help="Total requests (COUNT)")
    limit.add_argument(
        "--duration",
        type=_duration_arg,
        default=None,
        help="Wall-clock budget such as 30s or 1m30s (DURATION)",
    )
    parser.add_argument("--log-level", default=None, help="Log level (LOG_LEVEL)")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit JSON log lines (LOG_JSON)",
    )
    return parser


def resolve_termination(args: argparse.Namespace, run_settings: RunSettings) -> Termination:
    if args.count is not None:
        if args.count < 1:
            raise HyperbenchError("--count must be >= 1")
        return CountLimit(args.count)
    if args.duration is not None:
        return Deadline(args.duration)
    return run_settings.termination()


def run_http(parallel: int, termination: Termination, cancel: CancelToken) -> RunResult:
    settings = load_settings(HttpSettings)
    client = create_client(settings)
    try:
        auth_token = get_auth_token(client, settings)
        transport = HttpTransport(client)
        controller = RunController(
            parallel=parallel,
            termination=termination,
            build_request=HttpRequestBuilder(client, settings, auth_token),
            transport_factory=lambda _index: transport,
            cancel=cancel,
        )
        return controller.run()
    finally:
        client.close()


def run_mqtt(parallel: int, termination: Termination, cancel: CancelToken) -> RunResult:
    settings = load_settings(MqttSettings)
    controller = RunController(
        parallel=parallel,
        termination=termination,
        build_request=MqttRequestBuilder(settings),
        transport_factory=lambda index: MqttTransport.connect(settings, index),
        cancel=cancel,
    )
    return controller.run()


RUNNERS: dict[str, Callable[[int, Termination, CancelToken], RunResult]] = {
    "http": run_http,
    "mqtt": run_mqtt,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        app = load_settings(AppSettings, log_level=args.log_level, log_json=args.json_logs)
        setup_logging(app.log_level, json_logs=app.log_json)
    except (HyperbenchError, ValueError) as exc:
        print(f"hyperbench: {exc}", file=sys.stderr)
        return 1

    cancel = CancelToken()
    try:
        run_settings = load_settings(RunSettings, parallel=args.parallel)
        termination = resolve_termination(args, run_settings)
        with interrupt_on_sigint(cancel):
            result = RUNNERS[args.transport](run_settings.parallel, termination, cancel)
    except HyperbenchError as exc:
        logger.error("run_aborted", transport=args.transport, error=str(exc))
        return 1

    report(result, args.transport)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
