"""Command-line entry point for kube-carbon.

``kube-carbon query`` answers one query object, or a list of them, read from
``--input`` or stdin against a JSON resource snapshot. ``kube-carbon health``
probes the snapshot repository.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from kube_carbon.config_loader import load_config
from kube_carbon.context import RequestContext
from kube_carbon.datasource import CarbonDataSource
from kube_carbon.estimation import build_calculator, build_runtime_config
from kube_carbon.logging_pipeline import configure_structured_logging, shutdown_listeners
from kube_carbon.resources import load_snapshot


def _read_stdin() -> str | None:
    """Read the query payload from stdin if it is piped."""
    try:
        if sys.stdin and not sys.stdin.isatty():
            return sys.stdin.read()
    except OSError as exc:
        print(f"Error reading stdin: {exc}", file=sys.stderr)
    return None


def _load_payloads(path: str | None, stdin_payload: str | None) -> list[object]:
    """Load one query object or a list of them from file or stdin."""
    if path:
        text = Path(path).read_text(encoding="utf-8")
    elif stdin_payload:
        text = stdin_payload
    else:
        raise ValueError("No input provided. Use --input or pipe JSON via stdin.")

    data = json.loads(text)
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return data
    raise ValueError("Input JSON must be an object or a list of objects.")


def _build_datasource(snapshot: str, config_path: str | None) -> CarbonDataSource:
    config = load_config(config_path)
    calculator = build_calculator(build_runtime_config(config=config))
    return CarbonDataSource(load_snapshot(snapshot), calculator)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kube-carbon",
        description="Estimate the carbon footprint of Kubernetes resources.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Verbosity of the JSON log stream written to stderr.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    query = subcommands.add_parser("query", help="Answer carbon queries.")
    query.add_argument(
        "--snapshot", "-s", required=True, help="Path to a resource snapshot JSON file."
    )
    query.add_argument(
        "--input",
        "-i",
        help="Path to the query JSON. If omitted, reads from stdin.",
    )
    query.add_argument("--config", "-c", help="Path to a JSON or YAML config file.")
    query.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Thread pool size used for batches of queries.",
    )
    query.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed for grid intensity lookups; later lookups use the default.",
    )

    health = subcommands.add_parser("health", help="Check the resource snapshot.")
    health.add_argument(
        "--snapshot", "-s", required=True, help="Path to a resource snapshot JSON file."
    )
    health.add_argument("--config", "-c", help="Path to a JSON or YAML config file.")
    return parser


def _run_query(args: argparse.Namespace) -> int:
    payloads = _load_payloads(args.input, _read_stdin())
    datasource = _build_datasource(args.snapshot, args.config)
    ctx = (
        RequestContext.with_timeout(args.timeout)
        if args.timeout is not None
        else RequestContext()
    )
    if len(payloads) == 1:
        responses = [datasource.query(payloads[0], ctx)]  # type: ignore[arg-type]
    else:
        responses = list(
            datasource.query_data(
                payloads, ctx, max_workers=args.max_workers  # type: ignore[arg-type]
            ).values()
        )
    output: object
    if len(responses) == 1:
        output = responses[0].to_dict()
    else:
        output = [response.to_dict() for response in responses]
    print(json.dumps(output, separators=(",", ":")))
    return 0 if all(response.ok for response in responses) else 1


def _run_health(args: argparse.Namespace) -> int:
    result = _build_datasource(args.snapshot, args.config).check_health()
    print(json.dumps(result.to_dict(), separators=(",", ":")))
    return 0 if result.status == "ok" else 1


def main(argv: list[str] | None = None) -> int:
    """Run the kube-carbon CLI and return its exit code."""
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - controlled via tests
        exit_code = int(exc.code) if isinstance(exc.code, int) else 1
        return 0 if exit_code == 0 else 1

    listener = configure_structured_logging(level=getattr(logging, args.log_level))
    try:
        if args.command == "health":
            return _run_health(args)
        return _run_query(args)
    except Exception as exc:
        print(str(exc), file=sys.stderr)
        return 1
    finally:
        shutdown_listeners([listener])


if __name__ == "__main__":
    raise SystemExit(main())
