"""
Command-line interface for remotesplit.
"""

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from . import __version__
from .analysis import analyze_bundle, discover_exports
from .build import build_split_units, read_plans
from .core.config import LOG_LEVELS, SplitConfig
from .core.exceptions import RemoteSplitError
from .deploy import deploy_split_units
from .plan import create_split_plans
from .utils import format_bytes, format_report, setup_logging

EXPORT_PREVIEW = 8


def _parse_threshold(value: str) -> int:
    try:
        threshold = int(value)
    except ValueError:
        threshold = 0
    if threshold <= 0:
        raise argparse.ArgumentTypeError("--threshold must be a positive number")
    return threshold


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remotesplit",
        description="Split heavy dependencies out of a Python service into sibling units",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"remotesplit {__version__}",
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Set the logging level",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="YAML configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser(
        "analyze", help="Show dependency size report without building"
    )
    analyze_parser.add_argument("--entry", help="Main entry point")

    build_parser_ = subparsers.add_parser(
        "build", help="Analyze, split and generate unit artifacts"
    )
    build_parser_.add_argument("--entry", help="Main entry point")
    build_parser_.add_argument(
        "--split", help="Packages to extract, comma-separated (default: auto-detect)"
    )
    build_parser_.add_argument("--output", help="Output directory (default: .remotesplit)")
    build_parser_.add_argument(
        "--threshold", type=_parse_threshold,
        help="Auto-detect threshold in bytes (default: 512000)",
    )
    build_parser_.add_argument("--name", help="Main unit name (default: main-worker)")

    deploy_parser = subparsers.add_parser(
        "deploy", help="Deploy all generated units (siblings first, then main)"
    )
    deploy_parser.add_argument("--output", help="Output directory (default: .remotesplit)")
    deploy_parser.add_argument("--command", dest="deploy_command", help="Deploy command run in each unit")

    serve_parser = subparsers.add_parser("serve", help="Run a sibling unit's gRPC server")
    serve_parser.add_argument("unit_dir", help="Sibling unit directory")
    serve_parser.add_argument("--address", help="Listen address (default: from unit manifest)")

    return parser


def _load_config(args) -> SplitConfig:
    config = SplitConfig.from_file(args.config) if args.config else SplitConfig()
    overrides = {
        "entry": getattr(args, "entry", None),
        "output": getattr(args, "output", None),
        "threshold": getattr(args, "threshold", None),
        "worker_name": getattr(args, "name", None),
        "deploy_command": getattr(args, "deploy_command", None),
        "log_level": args.log_level,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)

    split = getattr(args, "split", None)
    if split:
        config.split = [s.strip() for s in split.split(",") if s.strip()]

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the remotesplit CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = _load_config(args)
        setup_logging(level=config.log_level)

        if args.command == "analyze":
            return _cmd_analyze(config)
        elif args.command == "build":
            return _cmd_build(config)
        elif args.command == "deploy":
            return _cmd_deploy(config)
        elif args.command == "serve":
            return _cmd_serve(config, args)
    except RemoteSplitError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


def _require_entry(config: SplitConfig) -> bool:
    if not config.entry:
        print("Error: --entry is required", file=sys.stderr)
        return False
    return True


def _cmd_analyze(config: SplitConfig) -> int:
    """Handle the analyze command."""
    if not _require_entry(config):
        return 1

    print(f"\n  remotesplit v{__version__}\n")
    print(f"  Analyzing {config.entry}...\n")
    analysis = analyze_bundle(config.entry)
    print(format_report(analysis))
    print()
    return 0


def _cmd_build(config: SplitConfig) -> int:
    """Handle the build command."""
    if not _require_entry(config):
        return 1

    print(f"\n  remotesplit v{__version__}\n")
    print(f"  Analyzing {config.entry}...\n")
    analysis = analyze_bundle(config.entry)
    print(format_report(analysis))
    print()

    plans = create_split_plans(config.split, analysis.packages, config.threshold)
    if not plans:
        print(f"  No dependencies exceed the {format_bytes(config.threshold)} threshold.")
        print("  Nothing to split. Your service is already lean!\n")
        return 0

    resolve_dir = os.path.dirname(os.path.abspath(config.entry))
    for plan in plans:
        print(f"  Discovering exports for {plan.package_name}...")
        plan.export_names = discover_exports(plan.package_name, resolve_dir)
        if plan.export_names:
            preview = ", ".join(plan.export_names[:EXPORT_PREVIEW])
            more = "..." if len(plan.export_names) > EXPORT_PREVIEW else ""
            print(f"    Found {len(plan.export_names)} exports: {preview}{more}")
        else:
            print("    Could not discover exports (will use dynamic fallback)")
    print()

    print(f"  Splitting {len(plans)} package(s):\n")
    for plan in plans:
        print(f"    {plan.package_name}")
        print(f"      Service:  {plan.service_name}")
        print(f"      Binding:  env[{plan.binding_name!r}]")
        print(f"      Exports:  {len(plan.export_names)} named + default handle")
    print()

    result = build_split_units(config, plans, analysis)

    print("  Build complete!\n")
    print("  Size comparison:")
    print(f"    Original bundle:  {format_bytes(analysis.total_bytes)}")
    print(f"    Main unit:        {format_bytes(result.main_size)}")
    for name, size in result.services:
        print(f"    {name:<20} {format_bytes(size)}")
    print(f"    Combined:         {format_bytes(result.combined_size)}")
    if analysis.total_bytes:
        reduction = round((1 - result.main_size / analysis.total_bytes) * 100)
        print(f"    Main reduction:   {reduction}%\n")

    print("  Output:")
    print(f"    {config.output}/main/unit.yaml")
    print(f"    {config.output}/main/compose.yaml")
    print(f"    {config.output}/main/src/_entry.py")
    for plan in plans:
        print(f"    {config.output}/{plan.service_name}/unit.yaml")
        print(f"    {config.output}/{plan.service_name}/compose.yaml")
        print(f"    {config.output}/{plan.service_name}/src/service.py")
    print()

    print("  Deploy:")
    print(f"    remotesplit deploy --output {config.output}")
    print()
    print("  Or manually (order matters):")
    for i, plan in enumerate(plans):
        print(f"    {i + 1}. remotesplit serve {config.output}/{plan.service_name}")
    print(f"    {len(plans) + 1}. python {config.output}/main/src/_entry.py\n")
    return 0


def _cmd_deploy(config: SplitConfig) -> int:
    """Handle the deploy command."""
    print(f"\n  remotesplit v{__version__}\n")
    print(f"  Deploying from {config.output} ...\n")

    plans = read_plans(config.output)
    asyncio.run(deploy_split_units(
        config.output,
        plans,
        command=config.deploy_command,
        health_timeout=config.health_timeout,
    ))
    print("  All units deployed successfully!")
    return 0


def _cmd_serve(config: SplitConfig, args) -> int:
    """Handle the serve command."""
    from .remote.service import serve
    from .runtime import load_entrypoint

    entrypoint, address = load_entrypoint(args.unit_dir, config.reference_capacity)
    try:
        asyncio.run(serve(entrypoint, args.address or address))
    except KeyboardInterrupt:
        print("Server interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
