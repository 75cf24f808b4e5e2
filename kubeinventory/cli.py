#!/usr/bin/env python3
"""
Command-line interface for kubeinventory.

Lists the namespaced resource types that hold at least one object in the
active namespace, as input for a backup or migration tool.
"""

import argparse
import logging
import sys
import threading
from dataclasses import dataclass
from typing import Optional

import yaml
from rich.console import Console
from rich.logging import RichHandler

from kubeinventory.cluster import NamespaceResolver, connect
from kubeinventory.config import SORT_MODES, Config
from kubeinventory.errors import ConfigError, InventoryCancelled, probe_error_for
from kubeinventory.inventory import InventoryResult, run_inventory
from kubeinventory.output import OutputManager, Verbosity, get_output, set_output

OUTPUT_FORMATS = ("table", "name", "yaml")

EXIT_FATAL = 1
EXIT_INCOMPLETE = 2
EXIT_CANCELLED = 130


@dataclass(frozen=True)
class ScanSettings:
    """Effective settings of a scan: CLI flags over environment over defaults."""

    kubeconfig: Optional[str]
    context: Optional[str]
    namespace: Optional[str]
    workers: int
    limit: int
    timeout: int
    sort_by: str
    keep_partial: bool


def _pick(value, fallback):
    return value if value is not None else fallback()


def resolve_settings(args: argparse.Namespace) -> ScanSettings:
    """
    Merge CLI arguments with environment configuration.

    Raises:
        ValueError: If a value is invalid
    """
    settings = ScanSettings(
        kubeconfig=getattr(args, "kubeconfig", None) or Config.kubeconfig(),
        context=getattr(args, "context", None) or Config.context(),
        namespace=getattr(args, "namespace", None) or Config.namespace(),
        workers=_pick(getattr(args, "workers", None), Config.workers),
        limit=_pick(getattr(args, "limit", None), Config.probe_limit),
        timeout=_pick(getattr(args, "timeout", None), Config.request_timeout),
        sort_by=_pick(getattr(args, "sort_by", None), Config.sort_by),
        keep_partial=bool(getattr(args, "keep_partial", False)) or Config.keep_partial(),
    )
    for name in ("workers", "limit", "timeout"):
        if getattr(settings, name) < 1:
            raise ValueError(f"--{name} must be at least 1")
    return settings


def display_inventory(result: InventoryResult, output_format: str = "table") -> None:
    """
    Print the inventory in the requested format.

    Args:
        result: Inventory to print
        output_format: "table", "name" (one group/version/kind per line) or "yaml"
    """
    output = get_output()

    if output_format == "yaml":
        output.result(yaml.safe_dump(result.to_dict(), sort_keys=False).rstrip())
        return

    if output_format == "name":
        for candidate in result.resources:
            output.result(candidate.gvk)
        return

    output.section("GVKs to be backed up")
    if not result.resources:
        output.info(f"No namespaced resources with objects found in namespace {result.namespace}")
        return
    output.table(
        f"Namespace: {result.namespace}",
        ["Kind", "Resource", "Group/Version"],
        [[c.kind, c.plural_name, c.group_version] for c in result.resources],
    )


def display_warnings(result: InventoryResult) -> None:
    """Print transient probe failures and discovery errors after the inventory."""
    output = get_output()

    for error in result.discovery_errors:
        output.warning(f"Discovery incomplete: {error}")
    for outcome in result.warnings:
        output.warning(str(probe_error_for(outcome)))
    if result.cancelled:
        output.warning("Run was cancelled; the inventory above is partial")

    if result.warnings or result.discovery_errors:
        output.warning(
            f"{len(result.warnings) + len(result.discovery_errors)} failure(s) occurred; "
            "the inventory may be incomplete"
        )


def cmd_scan(args: argparse.Namespace) -> None:
    """Handle the scan command."""
    output = get_output()
    output_format = getattr(args, "output", None) or "table"
    cancel_event = threading.Event()

    try:
        settings = resolve_settings(args)
        namespace = NamespaceResolver(
            kubeconfig=settings.kubeconfig,
            context=settings.context,
            namespace=settings.namespace,
        ).resolve()
        if output_format == "table":
            output.info(f"namespace of current context is: {namespace}")

        clients = connect(
            kubeconfig=settings.kubeconfig,
            context=settings.context,
            request_timeout=settings.timeout,
            workers=settings.workers,
        )
        with output.spinner(f"Probing resources in namespace {namespace}"):
            result = run_inventory(
                namespace,
                clients.discovery,
                clients.lister,
                workers=settings.workers,
                limit=settings.limit,
                sort_by=settings.sort_by,
                cancel_event=cancel_event,
                keep_partial=settings.keep_partial,
            )
    except ConfigError as e:
        output.error(
            f"Error: {e}",
            suggestion="Set a namespace on the current context or pass --namespace",
        )
        sys.exit(EXIT_FATAL)
    except InventoryCancelled as e:
        output.error(f"Error: {e}")
        sys.exit(EXIT_CANCELLED)
    except ValueError as e:
        output.error(f"Error: {e}")
        sys.exit(EXIT_FATAL)

    display_inventory(result, output_format)
    display_warnings(result)

    if result.cancelled:
        sys.exit(EXIT_CANCELLED)
    if getattr(args, "strict", False) and not result.complete:
        sys.exit(EXIT_INCOMPLETE)


def configure_logging(verbosity: Verbosity) -> None:
    """Route library logging through Rich on stderr; debug level only in verbose mode."""
    level = logging.DEBUG if verbosity >= Verbosity.VERBOSE else logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # The kubernetes client logs every request at debug level
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main() -> None:
    """Main entry point for kubeinventory CLI."""
    parser = argparse.ArgumentParser(
        description="Kubeinventory - List the namespaced resource types holding objects in a namespace",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kubeinventory scan
  kubeinventory scan --namespace team-a --output name
  kubeinventory scan --context staging --workers 8 --output yaml
  kubeinventory scan --sort-by group --strict

Only resource types that are namespaced, listable and hold at least one
object are reported. Transient failures are printed after the inventory.
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Probe every namespaced resource type and print those holding objects",
    )
    scan_parser.add_argument(
        "--kubeconfig",
        help="Path to kubeconfig file (defaults to KUBECONFIG or ~/.kube/config)",
    )
    scan_parser.add_argument(
        "--context",
        help="Kubeconfig context to use (defaults to the current context)",
    )
    scan_parser.add_argument(
        "--namespace",
        "-n",
        help="Namespace to inventory (defaults to the namespace of the context)",
    )
    scan_parser.add_argument(
        "--workers",
        type=int,
        help="Number of concurrent probes (defaults to 1, or KUBEINVENTORY_WORKERS)",
    )
    scan_parser.add_argument(
        "--limit",
        type=int,
        help="Objects requested per probe (defaults to 1)",
    )
    scan_parser.add_argument(
        "--timeout",
        type=int,
        help="Request timeout in seconds (defaults to 30)",
    )
    scan_parser.add_argument(
        "--sort-by",
        choices=SORT_MODES,
        help="Sort key for the inventory; ties are broken by resource name (defaults to kind)",
    )
    scan_parser.add_argument(
        "--output",
        "-o",
        choices=OUTPUT_FORMATS,
        default="table",
        help="Output format (defaults to table)",
    )
    scan_parser.add_argument(
        "--keep-partial",
        action="store_true",
        help="Print the resources found so far when the run is interrupted",
    )
    scan_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 2 when any probe or discovery failure occurred",
    )
    scan_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only show errors and final results",
    )
    scan_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show every resource as it is probed, and debug logging",
    )
    scan_parser.set_defaults(func=cmd_scan)

    args = parser.parse_args()

    # Set up verbosity
    if getattr(args, "quiet", False):
        verbosity = Verbosity.QUIET
    elif getattr(args, "verbose", False):
        verbosity = Verbosity.VERBOSE
    else:
        verbosity = Verbosity.NORMAL

    output_manager = OutputManager(verbosity=verbosity)
    set_output(output_manager)
    configure_logging(verbosity)

    # Call the appropriate command handler
    args.func(args)


if __name__ == "__main__":
    main()
