"""
Chain Log Reconciliation Tool

Compares the event logs of two EVM chains that should hold identical
history, window by window, and reports the ranges where they diverge.

Usage:
    logrecon comparelogs --chain-1 http://node-a:8545 --chain-2 http://node-b:8545 \\
        --from-block 1000000 --to-block 1000650
    logrecon comparelogs --vault-path logrecon/rpc-endpoints --from-block 1 \\
        --address 0x... --topics 0xddf2...,0x8c5b... --topics ""
    logrecon cspare --chain-1 ... --chain-2 ... --account-file accounts.json
    logrecon alerts --output alerts.yml
    logrecon version

Exit codes:
    0  ranges equal / command succeeded
    1  configuration, connection, fetch or timeout error
    2  invalid input
    3  mismatching ranges or balances found
"""

import argparse
import json
import logging
import sys
from typing import List, Optional, Tuple

from hvac.exceptions import VaultError

from logrecon.chain.balances import BalanceComparer, load_accounts
from logrecon.chain.client import ChainClient
from logrecon.monitoring.alerts import AlertRuleGenerator
from logrecon.monitoring.metrics import ReconciliationMetrics
from logrecon.reconciliation import __version__
from logrecon.reconciliation.driver import LogReconciler, ReconcileRequest
from logrecon.reconciliation.errors import (
    InvalidRangeError,
    ReconciliationError,
)
from logrecon.reconciliation.filters import LogFilter
from logrecon.utils.correlation import generate_run_id
from logrecon.utils.logging_config import LOG_LEVELS, configure_logging
from logrecon.utils.settings import RunSettings
from logrecon.utils.vault_client import VaultClient

logger = logging.getLogger(__name__)

APP_NAME = "logrecon"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_MISMATCH = 3


class ConfigurationError(Exception):
    """Raised when the command line and environment do not name what to run against."""


def build_parser(settings: RunSettings) -> argparse.ArgumentParser:
    """Build the argument parser with environment-backed defaults."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Reconcile event logs between two EVM chains",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "--loglevel",
        choices=sorted(LOG_LEVELS),
        default=settings.log_level.lower() if settings.log_level.lower() in LOG_LEVELS else "info",
        help="Log level"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", default=settings.log_file, help="Rotating log file path")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=settings.json_logging,
        help="Emit structured JSON log lines"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Endpoint options shared by comparelogs and cspare
    endpoints = argparse.ArgumentParser(add_help=False)
    endpoints.add_argument("--chain-1", default=settings.chain_1, help="Chain 1 RPC URL or IPC path")
    endpoints.add_argument("--chain-2", default=settings.chain_2, help="Chain 2 RPC URL or IPC path")
    endpoints.add_argument("--vault-path", help="Read chain_1/chain_2 endpoints from this Vault secret")

    compare_parser = subparsers.add_parser(
        "comparelogs",
        parents=[endpoints],
        help="Compare event logs between two chains"
    )
    compare_parser.add_argument("--from-block", type=int, default=0, help="First block (required, > 0)")
    compare_parser.add_argument("--to-block", type=int, default=0, help="Last block, 0 for latest")
    compare_parser.add_argument("--address", default="", help="Contract address to filter on")
    compare_parser.add_argument(
        "--topics",
        action="append",
        default=None,
        help="Comma-separated topic hashes for one position; repeat per position, \"\" for any"
    )
    compare_parser.add_argument(
        "--ignore-order",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Sort logs before hashing"
    )
    compare_parser.add_argument(
        "--timeout",
        type=float,
        default=settings.timeout,
        help="Overall run timeout in seconds"
    )
    compare_parser.add_argument(
        "--max-window",
        type=int,
        default=settings.max_window_size,
        help="Blocks per eth_getLogs request"
    )
    compare_parser.add_argument("--json", action="store_true", help="Print the run report as JSON")
    compare_parser.add_argument(
        "--metrics-port",
        type=int,
        default=settings.metrics_port,
        help="Serve Prometheus metrics on this port"
    )
    compare_parser.add_argument(
        "--pushgateway",
        default=settings.pushgateway,
        help="Push run metrics to this Prometheus Pushgateway"
    )

    cspare_parser = subparsers.add_parser(
        "cspare",
        parents=[endpoints],
        help="Compare account balances between two chains"
    )
    cspare_parser.add_argument(
        "--account-file",
        default="accounts.json",
        help="JSON array of account addresses"
    )
    cspare_parser.add_argument("--block", type=int, default=None, help="Block to read at, latest when omitted")
    cspare_parser.add_argument(
        "--timeout",
        type=float,
        default=settings.timeout,
        help="Per-request timeout in seconds"
    )
    cspare_parser.add_argument("--json", action="store_true", help="Print the balance report as JSON")

    alerts_parser = subparsers.add_parser("alerts", help="Generate Prometheus alert rules")
    alerts_parser.add_argument("--output", help="Write rules to this file instead of stdout")
    alerts_parser.add_argument(
        "--stale-after-hours",
        type=int,
        default=24,
        help="Alert when no run succeeded for this long"
    )

    subparsers.add_parser("version", help="Show version")

    return parser


def resolve_endpoints(args: argparse.Namespace) -> Tuple[str, str]:
    """
    Get both endpoints from Vault or from flags/environment.

    Raises:
        ConfigurationError: If an endpoint is missing or Vault is unusable
        VaultError: If the Vault secret cannot be read
    """
    if args.vault_path:
        with VaultClient() as vault:
            status = vault.health_check()
            if not status:
                raise ConfigurationError(f"Vault unavailable: {status.error}")
            return vault.get_rpc_endpoints(args.vault_path)

    missing = [
        flag for flag, value in (("--chain-1", args.chain_1), ("--chain-2", args.chain_2))
        if not value
    ]
    if missing:
        raise ConfigurationError(f"missing endpoint: {', '.join(missing)}")
    return args.chain_1, args.chain_2


def check_chain_ids(client_a: ChainClient, client_b: ChainClient) -> bool:
    """Warn when the endpoints report different chain ids."""
    id_a = client_a.chain_id()
    id_b = client_b.chain_id()
    if id_a != id_b:
        logger.warning(f"Chain ids differ: {client_a.name}={id_a} {client_b.name}={id_b}")
        return False
    logger.info(f"Chain id: {id_a}")
    return True


def connect(args: argparse.Namespace, timeout: float) -> Tuple[ChainClient, ChainClient]:
    chain_1, chain_2 = resolve_endpoints(args)
    client_a = ChainClient("chain_1", chain_1, timeout=timeout)
    try:
        client_b = ChainClient("chain_2", chain_2, timeout=timeout)
    except Exception:
        client_a.close()
        raise
    return client_a, client_b


def run_comparelogs(args: argparse.Namespace) -> int:
    """Run a log reconciliation and map the outcome to an exit code."""
    request = ReconcileRequest(
        from_block=args.from_block,
        to_block=args.to_block,
        log_filter=LogFilter.build(args.address, args.topics),
        ignore_order=args.ignore_order,
        timeout=args.timeout,
        max_window_size=args.max_window,
    )
    request.validate()

    metrics = ReconciliationMetrics()
    metrics.set_build_info({"version": __version__})
    if args.metrics_port:
        metrics.start_server(args.metrics_port)

    run_id = generate_run_id()
    client_a, client_b = connect(args, args.timeout)
    try:
        check_chain_ids(client_a, client_b)
        reconciler = LogReconciler(client_a, client_b, metrics=metrics)
        try:
            report = reconciler.reconcile(request, run_id=run_id)
        finally:
            if args.pushgateway:
                push_metrics(metrics, args.pushgateway, run_id)
    finally:
        client_a.close()
        client_b.close()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))

    return EXIT_OK if report.ok else EXIT_MISMATCH


def push_metrics(metrics: ReconciliationMetrics, gateway: str, run_id: str) -> None:
    """Push run metrics; a failed push is logged and does not change the outcome."""
    try:
        metrics.push(gateway, grouping_key={"instance": APP_NAME})
    except Exception as e:
        logger.warning(f"Metrics for run {run_id} not pushed: {e}")


def run_cspare(args: argparse.Namespace) -> int:
    """Compare balances of the accounts in the account file."""
    addresses = load_accounts(args.account_file)
    logger.info(f"Loaded {len(addresses)} accounts from {args.account_file}")

    client_a, client_b = connect(args, args.timeout)
    try:
        check_chain_ids(client_a, client_b)
        report = BalanceComparer(client_a, client_b).compare(addresses, block=args.block)
    finally:
        client_a.close()
        client_b.close()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))

    return EXIT_OK if report.ok else EXIT_MISMATCH


def run_alerts(args: argparse.Namespace) -> int:
    generator = AlertRuleGenerator(stale_after_hours=args.stale_after_hours)
    if args.output:
        path = generator.write_rules(args.output)
        logger.info(f"Alert rules written to {path}")
    else:
        print(generator.to_yaml(), end="")
    return EXIT_OK


def run_version(args: argparse.Namespace) -> int:
    print(f"{APP_NAME} {__version__}")
    return EXIT_OK


COMMANDS = {
    "comparelogs": run_comparelogs,
    "cspare": run_cspare,
    "alerts": run_alerts,
    "version": run_version,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    try:
        settings = RunSettings.from_env()
    except ValueError as e:
        print(f"{APP_NAME}: {e}", file=sys.stderr)
        return EXIT_ERROR

    parser = build_parser(settings)
    args = parser.parse_args(argv)

    configure_logging(
        level="debug" if args.verbose else args.loglevel,
        json_logging=args.json_logs,
        log_file=args.log_file,
    )

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    try:
        return COMMANDS[args.command](args)

    except InvalidRangeError as e:
        logger.error(f"Invalid input: {e}")
        return EXIT_INVALID_INPUT

    except ReconciliationError as e:
        partial = getattr(e, "partial_summary", None)
        if partial is not None:
            logger.error(f"Partial summary: {partial.to_dict()}")
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return EXIT_ERROR

    except (ConfigurationError, VaultError, ValueError, OSError) as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
