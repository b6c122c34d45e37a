import argparse
import logging
import sys

from tcpbench import config
from tcpbench.client import ThroughputClient
from tcpbench.errors import BenchError, ConfigError, ReportError
from tcpbench.latency import LatencyClient, LatencyServer
from tcpbench.logs import setup_logging
from tcpbench.message import MessageClient, MessageServer
from tcpbench.server import ThroughputServer

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(prog="tcpbench", description="Minimal TCP benchmarks")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every round")
    commands = parser.add_subparsers(dest="command", required=True)

    def add(name, help_text, transfer=True):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("--host", help="address to bind or connect to")
        sub.add_argument("--port", type=int, help=f"TCP port (default {config.DEFAULT_PORT})")
        if transfer:
            sub.add_argument("--bytes", dest="n_bytes", type=int, help="size of each round")
            sub.add_argument("--rounds", dest="n_rounds", type=int, help="number of rounds")
        return sub

    server = add("server", "receive rounds and report bandwidth")
    server.add_argument("--backlog", type=int, help=f"listen backlog (default {config.BACKLOG})")
    server.add_argument("--results", help="append each run to this JSON file")

    add("client", "send rounds to a throughput server")
    add("latency-server", "echo rounds back to a latency client")
    add("latency-client", "measure round-trip latency")

    message_server = add("message-server", "print one receive per connection", transfer=False)
    message_server.add_argument("--max-data-size", type=int,
                                help=f"receive buffer size (default {config.MAX_DATA_SIZE})")
    message_client = add("message-client", "send one message", transfer=False)
    message_client.add_argument("--message", help=f"text to send (default {config.MESSAGE!r})")

    report = commands.add_parser("report", help="tabulate and plot saved server results")
    report.add_argument("--results", required=True, help="JSON file written by the server")
    report.add_argument("--output", default=".", help="directory for CSV and PNG output")
    return parser


def resolve_config(args) -> config.BenchConfig:
    """Defaults for the command, then environment, then flags."""
    defaults = {
        "server": config.server_defaults,
        "client": config.client_defaults,
        "latency-server": lambda: config.latency_defaults(client=False),
        "latency-client": lambda: config.latency_defaults(client=True),
        "message-server": lambda: config.message_defaults(client=False),
        "message-client": lambda: config.message_defaults(client=True),
    }[args.command]()
    return config.from_env(defaults).with_overrides(
        host=args.host,
        port=args.port,
        n_bytes=getattr(args, "n_bytes", None),
        n_rounds=getattr(args, "n_rounds", None),
        backlog=getattr(args, "backlog", None),
        max_data_size=getattr(args, "max_data_size", None),
        message=getattr(args, "message", None),
    )


def run_command(args):
    if args.command == "report":
        from tcpbench.report import create_report
        create_report(args.results, args.output)
        return

    cfg = resolve_config(args)
    if args.command == "server":
        ThroughputServer(cfg, results_path=args.results).run()
    elif args.command == "client":
        ThroughputClient(cfg).run()
    elif args.command == "latency-server":
        LatencyServer(cfg).run()
    elif args.command == "latency-client":
        LatencyClient(cfg).run()
    elif args.command == "message-server":
        MessageServer(cfg).run()
    elif args.command == "message-client":
        MessageClient(cfg).run()


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        run_command(args)
    except BenchError as e:
        logger.error(str(e))
        return e.exit_code
    except (ConfigError, ReportError) as e:
        logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
