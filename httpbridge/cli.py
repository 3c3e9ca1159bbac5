"""
Entrypoint: load .env and config, init logging, submit one request per URL,
pump the main-thread context until every callback has fired.
"""

import argparse
import json
import signal
import sys
from typing import List

import structlog
from dotenv import load_dotenv

from .config import Config
from .contexts import QueueContext
from .engine import HttpEngine
from .logging_config import configure_logging
from .models import HttpMethod, ResponseOutcome

logger = structlog.get_logger(__name__)


def parse_header(value: str):
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Header must look like 'Name: Value', got {value!r}")
    return name.strip(), header_value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpbridge",
        description="Send HTTP requests concurrently and print one JSON outcome per line.",
    )
    parser.add_argument("urls", nargs="+", metavar="URL")
    parser.add_argument("-X", "--method", default="GET",
                        help=f"HTTP method ({', '.join(m.value for m in HttpMethod)})")
    parser.add_argument("-H", "--header", action="append", type=parse_header, default=[],
                        help="Request header 'Name: Value', may be repeated")
    parser.add_argument("-d", "--data", default="", help="Request body")
    parser.add_argument("--config", default=None, help="Path to a config.yaml")
    parser.add_argument("--poll-interval", type=float, default=0.1,
                        help="Seconds between main-thread delivery pumps")
    return parser


def run(args: argparse.Namespace) -> int:
    config = Config(args.config)
    log_config = config.logging
    configure_logging(log_config.get('level', 'INFO'), log_config.get('renderer', 'json'))

    context = QueueContext()
    outcomes: List[ResponseOutcome] = []

    def on_outcome(outcome: ResponseOutcome) -> None:
        outcomes.append(outcome)
        print(json.dumps(outcome.as_dict()), flush=True)

    headers = dict(args.header)

    with HttpEngine(context, config=config) as engine:
        handles = [
            engine.request(url, args.method, args.data, headers, on_outcome)
            for url in args.urls
        ]

        def signal_handler(signum, frame):
            logger.info("cancel_requested", signal=signum, in_flight=sum(not h.done for h in handles))
            for handle in handles:
                handle.cancel()

        previous = signal.signal(signal.SIGINT, signal_handler)
        try:
            while len(outcomes) < len(handles):
                context.run_pending(timeout=args.poll_interval)
        finally:
            signal.signal(signal.SIGINT, previous)

    return 0 if all(o.succeeded for o in outcomes) else 1


def main(argv=None) -> int:
    """Main entry point for the httpbridge command."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        return run(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
