#!/usr/bin/env python3
"""
Nodus - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the scenarios and prints a summary

All business logic is in the modules, following black box principles.
"""

import argparse
import logging
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from nodus.config.provider import (
    ConfigProvider,
    EnvConfigProvider,
    check_log_level,
    check_poll_interval,
)
from nodus.errors import GatewayError
from nodus.logging_config import configure_logging
from nodus.modules.catalog import CatalogLoadError, load_catalog
from nodus.modules.executor import ScenarioReport, ScenarioRunner
from nodus.modules.gateway import GatewayFactory
from nodus.modules.scenario import ScenarioLoadError, load_scenario

logger = logging.getLogger("nodus.main")

EXIT_OK = 0
EXIT_SCENARIO_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nodus",
        description="Run node/pod scenarios against a Kubernetes control plane",
    )
    parser.add_argument("scenarios", nargs="+", help="Scenario YAML files, run in order")
    parser.add_argument("--node-config", help="Node class config (env: NODUS_NODE_CONFIG)")
    parser.add_argument("--pod-config", help="Pod class config (env: NODUS_POD_CONFIG)")
    parser.add_argument("--namespace", help="Namespace for pods (env: NODUS_NAMESPACE)")
    parser.add_argument("--kubeconfig", help="Path to kubeconfig (env: KUBECONFIG)")
    parser.add_argument("--context", help="Kubeconfig context (env: NODUS_KUBE_CONTEXT)")
    parser.add_argument("--in-cluster", action="store_true", default=None,
                        help="Use in-cluster service account credentials")
    parser.add_argument("--dry-run", action="store_true", default=None,
                        help="Run against an in-memory cluster")
    parser.add_argument("--poll-interval", type=float,
                        help="Seconds between assert polls (env: NODUS_POLL_INTERVAL)")
    parser.add_argument("--no-fail-fast", dest="fail_fast", action="store_false", default=None,
                        help="Keep running scenarios after one fails")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR (env: LOG_LEVEL)")
    return parser


def print_summary(console: Console, reports: List[ScenarioReport], skipped: int) -> None:
    table = Table(title="Scenario results")
    table.add_column("Scenario")
    table.add_column("Steps", justify="right")
    table.add_column("Result")
    table.add_column("Error")

    for report in reports:
        failed = report.failed_step
        table.add_row(
            report.name,
            f"{report.completed}/{report.total_steps}",
            "[green]PASS[/green]" if report.passed else "[red]FAIL[/red]",
            f"step {failed.index} ({failed.verb}): {failed.error}" if failed else "",
        )
    console.print(table)
    if skipped:
        console.print(f"[yellow]{skipped} scenario(s) skipped after failure[/yellow]")


def main(argv: Optional[Sequence[str]] = None, config_provider: Optional[ConfigProvider] = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()
    config_provider = config_provider or EnvConfigProvider()

    try:
        cluster_config = config_provider.get_cluster_config()
        runner_config = config_provider.get_runner_config()
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return EXIT_CONFIG_ERROR

    # Command line flags win over the environment
    for name in ("namespace", "kubeconfig", "context", "in_cluster", "dry_run"):
        value = getattr(args, name)
        if value is not None:
            setattr(cluster_config, name, value)
    if args.node_config:
        runner_config.node_config_path = args.node_config
    if args.pod_config:
        runner_config.pod_config_path = args.pod_config
    if args.fail_fast is not None:
        runner_config.fail_fast = args.fail_fast
    try:
        if args.poll_interval is not None:
            runner_config.poll_interval = check_poll_interval(args.poll_interval, "--poll-interval")
        if args.log_level:
            runner_config.log_level = check_log_level(args.log_level, "--log-level")
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return EXIT_CONFIG_ERROR

    configure_logging(runner_config.log_level)

    try:
        catalog = load_catalog(runner_config.node_config_path, runner_config.pod_config_path)
        scenarios = [load_scenario(path) for path in args.scenarios]
        gateway = GatewayFactory.build(cluster_config)
    except (CatalogLoadError, ScenarioLoadError, GatewayError) as e:
        console.print(f"[red]{e}[/red]")
        return EXIT_CONFIG_ERROR

    runner = ScenarioRunner(
        gateway,
        catalog,
        namespace=cluster_config.namespace,
        poll_interval=runner_config.poll_interval,
    )
    reports = runner.run_all(scenarios, fail_fast=runner_config.fail_fast)
    print_summary(console, reports, skipped=len(scenarios) - len(reports))

    if len(reports) == len(scenarios) and all(r.passed for r in reports):
        return EXIT_OK
    return EXIT_SCENARIO_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
