"""Command-line entry point: mfh-deploy."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from dotenv import load_dotenv

from .backends import ExecutionBackend, InMemoryBackend, JsonRpcBackend
from .config import DeployConfig, resolve_rpc_url
from .constants import DEFAULT_NETWORK
from .deployer import ModuleDeployer
from .exceptions import DeploymentError, InvalidConfigurationError, UnknownUnitError, WiringFailure
from .modules import DEFAULT_UNIT_ORDER, build_units, select_units
from .observability import configure_structlog
from .orchestrator import Orchestrator
from .paths import get_default_artifacts_dir
from .registry import ArtifactRegistry, open_registry
from .wiring import WiringEngine, platform_wiring_steps

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mfh-deploy",
        description="Deploy and wire the MFH platform modules.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Units (default order): " + ", ".join(DEFAULT_UNIT_ORDER) + ", USDTToken\n"
            "Environment overrides are read from the process and a .env file."
        ),
    )
    parser.add_argument(
        "--network",
        default=DEFAULT_NETWORK,
        help=f"Target network (default: {DEFAULT_NETWORK})",
    )
    parser.add_argument(
        "--deployments-dir",
        type=Path,
        default=None,
        help="Registry root; artifacts persist under <dir>/<network> (default: ./deployments)",
    )
    parser.add_argument(
        "--artifacts-dir",
        type=Path,
        default=None,
        help="Hardhat compilation artifacts (default: ./artifacts)",
    )
    parser.add_argument("--rpc-url", default=None, help="RPC endpoint (default: from environment)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use an in-memory backend and registry; nothing is sent or written",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default="console",
        help="Log output format (default: console)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    all_parser = subparsers.add_parser("all", help="Deploy every default unit, then wire")
    all_parser.add_argument(
        "--skip-wiring", action="store_true", help="Stop after the deployment phase"
    )

    unit_parser = subparsers.add_parser("unit", help="Deploy the named units only")
    unit_parser.add_argument("tags", nargs="+", metavar="TAG", help="Unit tag(s)")

    subparsers.add_parser("wire", help="Run the post-deploy wiring phase only")
    subparsers.add_parser("status", help="Show recorded addresses for every module")

    return parser


def _make_backend(args: argparse.Namespace) -> ExecutionBackend:
    if args.dry_run:
        return InMemoryBackend()

    rpc_url = args.rpc_url or resolve_rpc_url(args.network)
    if rpc_url is None:
        raise InvalidConfigurationError(
            f"No RPC URL for network '{args.network}': pass --rpc-url or set "
            f"${args.network.upper()}_RPC_URL"
        )
    artifacts_dir = args.artifacts_dir or get_default_artifacts_dir()
    return JsonRpcBackend(rpc_url, artifacts_dir)


def _make_registry(args: argparse.Namespace) -> ArtifactRegistry:
    if args.dry_run:
        return ArtifactRegistry(args.network)
    return open_registry(args.network, args.deployments_dir)


def _print_status(registry: ArtifactRegistry, units) -> None:
    for unit in units.values():
        print(f"{unit.tag}:")
        for descriptor in unit.modules:
            artifact = registry.get_or_null(descriptor.tag)
            location = artifact.address if artifact else "not deployed"
            print(f"  {descriptor.tag.value:<20} {location}")


def run(args: argparse.Namespace, backend: Optional[ExecutionBackend] = None) -> int:
    """
    Execute a parsed command.

    Args:
        args: Parsed command-line arguments
        backend: Backend override (tests); built from args when None

    Returns:
        Process exit status
    """
    config = DeployConfig.from_env()
    registry = _make_registry(args)

    if args.command == "status":
        units = build_units(config, config.deployer or "")
        _print_status(registry, units)
        return EXIT_OK

    if backend is None:
        backend = _make_backend(args)

    sender = config.deployer or backend.default_account()
    log.info("deploying_as", account=sender, network=args.network)

    units = build_units(config, sender)
    orchestrator = Orchestrator(ModuleDeployer(backend, sender), registry)
    wiring = WiringEngine(backend, sender)

    match args.command:
        case "all":
            report = orchestrator.run_all(select_units(units))
            if not args.skip_wiring:
                wiring.run_wiring(platform_wiring_steps(config), registry)
            return report.exit_code
        case "unit":
            report = orchestrator.run_all(select_units(units, args.tags))
            return report.exit_code
        case "wire":
            wiring.run_wiring(platform_wiring_steps(config), registry)
            return EXIT_OK
        case _:
            raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_structlog(args.log_format)

    try:
        return run(args)
    except UnknownUnitError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except WiringFailure as e:
        log.error("wiring_failed", step=e.step_index, error=str(e))
        return EXIT_FAILED
    except DeploymentError as e:
        log.error("deployment_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
