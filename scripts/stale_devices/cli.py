"""CLI entry point: run, check."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys

from scripts.stale_devices.audit import StaleDeviceAudit
from scripts.stale_devices.base_source import AuthenticationError
from scripts.stale_devices.config import AuditConfig, load_config
from scripts.stale_devices.exporter import CsvExporter
from scripts.stale_devices.logging_config import configure_logging
from scripts.stale_devices.sources.active_directory import ActiveDirectorySource
from scripts.stale_devices.sources.entra_devices import EntraDeviceSource

logger = logging.getLogger("stale_devices.cli")


def _apply_overrides(config: AuditConfig, args: argparse.Namespace) -> AuditConfig:
    """Return a copy of config with command-line overrides applied."""
    changes = {}
    if args.cutoff_days is not None:
        changes["stale_cutoff_days"] = args.cutoff_days
    if args.output:
        changes["primary_export_path"] = args.output
    if args.no_debug_output:
        changes["debug_export_path"] = None
    elif args.debug_output:
        changes["debug_export_path"] = args.debug_output
    if not changes:
        return config
    return dataclasses.replace(config, report=dataclasses.replace(config.report, **changes))


def _build_audit(config: AuditConfig, export: bool = True) -> StaleDeviceAudit:
    return StaleDeviceAudit(
        config,
        directory=ActiveDirectorySource(config.directory, config.report.domain_partitions),
        devices=EntraDeviceSource(config.entra),
        exporter=CsvExporter() if export else None,
    )


def _print_table(records) -> None:
    fmt = "{:<24}  {:<20}  {:<20}  {:<25}  {}"
    print(fmt.format("DOMAIN", "COMPUTER", "ACCOUNT", "LAST CHANGED", "STATUS"))
    print("-" * 120)
    for r in records:
        print(fmt.format(
            r.domain_partition[:24],
            r.computer_name[:20],
            r.account_name[:20],
            r.last_changed.isoformat()[:25],
            r.status.value,
        ))


def cmd_run(args: argparse.Namespace) -> None:
    """Collect, reconcile and export stale computers."""
    config = _apply_overrides(load_config(), args)
    audit = _build_audit(config, export=not args.preview)
    result = audit.run()

    if args.preview:
        if not result.actionable:
            print("No stale computers without recent cloud activity.")
            return
        _print_table(result.actionable)
        return
    logger.info("Run %s finished: %s", result.run_id, result.summary())


def cmd_check(args: argparse.Namespace) -> None:
    """Verify directory bind and Graph token acquisition."""
    config = load_config()
    audit = _build_audit(config, export=False)
    audit.authenticate()
    print(f"Directory and Entra ID authentication succeeded for tenant {config.tenant_id}.")


def main(argv=None) -> None:
    """Main CLI entry point."""
    configure_logging(
        os.environ.get("LOG_LEVEL", "INFO"),
        os.environ.get("LIBRARY_LOG_LEVEL", "WARNING"),
    )

    parser = argparse.ArgumentParser(
        prog="stale-devices",
        description="Find stale AD computer accounts with no recent Entra ID sign-in",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # run command
    run_parser = subparsers.add_parser("run", help="Run the audit and export CSVs")
    run_parser.add_argument(
        "--cutoff-days", "-d",
        type=int,
        default=None,
        help="Days without change before a computer is stale (default: STALE_CUTOFF_DAYS)",
    )
    run_parser.add_argument(
        "--output", "-o",
        default=None,
        help="Actionable CSV path (default: EXPORT_PATH)",
    )
    debug_group = run_parser.add_mutually_exclusive_group()
    debug_group.add_argument(
        "--debug-output",
        default=None,
        help="Also write every enriched record to this CSV",
    )
    debug_group.add_argument(
        "--no-debug-output",
        action="store_true",
        help="Disable the debug CSV even if DEBUG_EXPORT_PATH is set",
    )
    run_parser.add_argument(
        "--preview",
        action="store_true",
        help="Print actionable computers instead of writing files",
    )
    run_parser.set_defaults(func=cmd_run)

    # check command
    check_parser = subparsers.add_parser("check", help="Test directory and Graph authentication")
    check_parser.set_defaults(func=cmd_check)

    args = parser.parse_args(argv)
    try:
        args.func(args)
    except AuthenticationError as exc:
        logger.error("Authentication failed: %s", exc)
        sys.exit(1)
    except Exception as exc:
        logger.error("%s failed: %s", args.command, exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
