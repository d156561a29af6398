import argparse
import json
import logging
import signal
import sys
import threading
import time
from contextlib import contextmanager

from pydantic import ValidationError

from cli.progress import ProgressReporter
from core.config import settings
from core.models import ScanConfig
from pipeline import liveness
from pipeline.orchestrator import Orchestrator
from probers import banner
from report import output


def _print(obj):
    print(json.dumps(obj, indent=2, default=str))


@contextmanager
def _cancel_on_interrupt(cancel: threading.Event):
    """Ctrl-C sets the cancellation event instead of killing the scan."""

    def _handler(signum, frame):
        print("\nCancelling scan...", file=sys.stderr)
        cancel.set()

    try:
        previous = signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # not the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _save(args, reports, elapsed):
    if args.csv:
        output.save_csv(args.csv, reports)
        print(f"Saved CSV to {args.csv}", file=sys.stderr)
    if args.report:
        output.save_report(args.report, output.generate_scan_report(reports, elapsed))
        print(f"Saved report to {args.report}", file=sys.stderr)


def cmd_scan(args):
    cancel = threading.Event()
    try:
        config = ScanConfig(
            host=args.host,
            start_port=args.start,
            end_port=args.end,
            concurrency=args.threads,
            timeout_s=args.timeout / 1000.0,
            cancel=cancel,
        )
    except ValidationError as exc:
        print(f"invalid scan options: {exc}", file=sys.stderr)
        return 2

    orch = Orchestrator()
    reporter = None if args.no_progress else ProgressReporter()
    started = time.monotonic()
    with _cancel_on_interrupt(cancel):
        report, err = orch.scan_host(config, reporter=reporter, grab_banners=not args.no_banners)
    elapsed = time.monotonic() - started

    print(output.format_result_summary(report.host, report.open_ports), file=sys.stderr)
    if err is not None:
        print(f"Scan error: {err}", file=sys.stderr)
    _print(report.model_dump(mode="json"))
    _save(args, [report], elapsed)
    return 1 if err is not None else 0


def cmd_ping(args):
    alive = liveness.is_alive(args.host, timeout=args.timeout / 1000.0)
    _print({"host": args.host, "alive": alive})
    return 0 if alive else 1


def cmd_banner(args):
    text, err = banner.grab_banner(args.host, args.port, args.timeout / 1000.0)
    _print({"host": args.host, "port": args.port, "banner": text, "error": str(err) if err else None})
    return 1 if err is not None else 0


def cmd_range(args):
    cancel = threading.Event()
    orch = Orchestrator()
    reporter_factory = None if args.no_progress else ProgressReporter
    started = time.monotonic()
    try:
        with _cancel_on_interrupt(cancel):
            reports, err = orch.sweep(
                args.targets,
                start_port=args.start,
                end_port=args.end,
                concurrency=args.threads,
                timeout_s=args.timeout / 1000.0,
                cancel=cancel,
                reporter_factory=reporter_factory,
                grab_banners=not args.no_banners,
            )
    except ValueError as exc:
        print(f"invalid range: {exc}", file=sys.stderr)
        return 2
    elapsed = time.monotonic() - started

    for r in reports:
        print(output.format_result_summary(r.host, r.open_ports), file=sys.stderr)
    if err is not None:
        print(f"Scan error: {err}", file=sys.stderr)
    _print([r.model_dump(mode="json") for r in reports])
    _save(args, reports, elapsed)
    return 1 if err is not None else 0


def cmd_web(args):
    import uvicorn

    uvicorn.run("api.server:app", host=args.bind, port=args.port, log_level=settings.log_level.lower())
    return 0


def _port(value: str) -> int:
    port = int(value)
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError("port must be between 1 and 65535")
    return port


def _add_scan_options(p, default_end: int):
    p.add_argument("start", nargs="?", type=_port, default=settings.default_start_port, help="first port")
    p.add_argument("end", nargs="?", type=_port, default=default_end, help="last port")
    p.add_argument("--threads", type=int, default=settings.default_concurrency, help="concurrent probes")
    p.add_argument("--timeout", type=int, default=500, help="per-probe timeout in ms")
    p.add_argument("--no-progress", action="store_true", help="disable the progress bar")
    p.add_argument("--no-banners", action="store_true", help="skip banner grabbing on open ports")
    p.add_argument("--csv", help="write results to this CSV file")
    p.add_argument("--report", help="write a text report to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Concurrent TCP connect port scanner")
    parser.add_argument("--log-level", default=settings.log_level, help="logging level")
    sub = parser.add_subparsers()

    p_scan = sub.add_parser("scan", help="Scan a host for open ports")
    p_scan.add_argument("host")
    _add_scan_options(p_scan, default_end=1000)
    p_scan.set_defaults(func=cmd_scan)

    p_ping = sub.add_parser("ping", help="Check whether a host is alive")
    p_ping.add_argument("host")
    p_ping.add_argument("--timeout", type=int, default=2000, help="per-port timeout in ms")
    p_ping.set_defaults(func=cmd_ping)

    p_banner = sub.add_parser("banner", help="Grab a service banner from one port")
    p_banner.add_argument("host")
    p_banner.add_argument("port", type=_port)
    p_banner.add_argument("--timeout", type=int, default=5000, help="connect/read timeout in ms")
    p_banner.set_defaults(func=cmd_banner)

    p_range = sub.add_parser("range", help="Scan an IP range, skipping hosts that are down")
    p_range.add_argument("targets", help="192.168.1.1-192.168.1.10 or a CIDR")
    _add_scan_options(p_range, default_end=100)
    p_range.set_defaults(func=cmd_range)

    p_web = sub.add_parser("web", help="Start the HTTP API")
    p_web.add_argument("--bind", default=settings.api_host)
    p_web.add_argument("--port", type=_port, default=settings.api_port)
    p_web.set_defaults(func=cmd_web)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if hasattr(args, "func"):
        return args.func(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
