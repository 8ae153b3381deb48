"""
cachemover CLI argument parser.

This module implements the command-line interface for cachemover using argparse.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from cachemover.cli.prompts import Prompter
from cachemover.cli.report import ConsoleReporter
from cachemover.cli.utils import print_error
from cachemover.config.parser import RunConfig, load_config
from cachemover.core.environment import EnvironmentConfigurator, get_default_store
from cachemover.core.exceptions import (
    ConfigError,
    DestinationError,
    EnvironmentStoreError,
    RegistryError,
    ToolchainNotFoundError,
)
from cachemover.core.platform import normalize_root
from cachemover.orchestrator import MigrationOrchestrator, RunMode
from cachemover.toolchain.detector import ToolchainDetector
from cachemover.toolchain.migrator import CacheMigrator
from cachemover.toolchain.registry import ToolchainRegistry
from cachemover.toolchain.verifier import (
    DEFAULT_QUERY_TIMEOUT,
    OverallStatus,
    Verifier,
)

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("cachemover")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """cachemover command-line interface."""

    def __init__(self, input_func=input):
        """
        Initialize CLI with argument parser.

        Args:
            input_func: Line reader used for interactive prompts
        """
        self.parser = self._create_parser()
        self.input_func = input_func

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="cachemover",
            description=(
                "cachemover - relocate package manager caches to another drive"
            ),
            epilog=(
                "Examples:\n"
                "  cachemover -d D:            configure, migrate and verify\n"
                "  cachemover --dry-run -d D:  preview without changing anything\n"
                "  cachemover --verify-only    check an existing configuration"
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"cachemover {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ~/.cachemover.yaml)",
        )

        # Run options
        parser.add_argument(
            "--destination",
            "-d",
            metavar="ROOT",
            help="Destination root for relocated caches (e.g. D:)",
        )
        parser.add_argument(
            "--environment-file",
            type=Path,
            metavar="PATH",
            help="Machine-wide environment file on Linux/macOS "
            "(default: /etc/environment)",
        )
        parser.add_argument(
            "--only",
            action="append",
            metavar="NAME",
            help="Only handle this package manager (repeatable)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be done without changing anything",
        )

        mode = parser.add_mutually_exclusive_group()
        mode.add_argument(
            "--verify-only",
            action="store_true",
            help="Skip configuration and only verify the current state",
        )
        mode.add_argument(
            "--reconfigure",
            action="store_true",
            help="Configure even when a previous configuration exists",
        )

        parser.add_argument(
            "--yes",
            "-y",
            action="store_true",
            help="Delete migrated legacy caches without asking (short copies are kept)",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Exit with status 1 when verification fails",
        )
        parser.add_argument(
            "--list",
            action="store_true",
            help="List supported package managers and exit",
        )

        return parser

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        try:
            return self._execute(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _execute(self, args) -> int:
        """
        Build the components and run.

        Args:
            args: Parsed arguments

        Returns:
            Exit code
        """
        try:
            config = load_config(args.config)
        except ConfigError as e:
            print_error("Invalid configuration", str(e))
            return 1

        try:
            registry = self._build_registry(args, config)
        except ToolchainNotFoundError as e:
            known = ", ".join(ToolchainRegistry().names())
            print_error(str(e), f"Known package managers: {known}")
            return 1
        except RegistryError as e:
            print_error("Invalid tool-chain registry", str(e))
            return 1

        detector = ToolchainDetector()
        reporter = ConsoleReporter(quiet=args.quiet)

        if args.list:
            return self._list(args, config, registry, detector, reporter)

        prompter = Prompter(input_func=self.input_func, assume_yes=args.yes)
        try:
            root = self._resolve_destination(args, config, prompter)
        except DestinationError as e:
            print_error(str(e))
            return 1
        logger.debug(f"Destination root: {root}")

        environment_file = args.environment_file or config.environment_file
        try:
            store = get_default_store(environment_file)
        except EnvironmentStoreError as e:
            print_error(str(e))
            return 1
        logger.debug(f"Persistent environment: {store.location}")

        orchestrator = MigrationOrchestrator(
            registry=registry,
            detector=detector,
            migrator=CacheMigrator(),
            configurator=EnvironmentConfigurator(store),
            verifier=Verifier(
                store, query_timeout=config.query_timeout or DEFAULT_QUERY_TIMEOUT
            ),
            prompter=prompter,
            reporter=reporter,
        )
        result = orchestrator.run(
            root,
            dry_run=args.dry_run,
            verify_only=args.verify_only,
            mode=RunMode.CONFIGURE if args.reconfigure else None,
        )

        if (
            args.strict
            and result.verification is not None
            and result.verification.overall == OverallStatus.FAIL
        ):
            logger.debug("Verification failed and --strict given")
            return 1
        return 0

    def _build_registry(self, args, config: RunConfig) -> ToolchainRegistry:
        """Apply configuration overrides and ``--only`` to the built-in registry."""
        registry = ToolchainRegistry().with_overrides(
            config.toolchains, config.disabled
        )
        if args.only:
            registry = registry.select(args.only)
        logger.debug(f"Tool-chains considered: {', '.join(registry.names())}")
        return registry

    def _resolve_destination(self, args, config: RunConfig, prompter: Prompter) -> Path:
        """
        Resolve the destination root.

        Precedence: ``--destination``, then the configuration file, then an
        interactive prompt.

        Raises:
            DestinationError: If no usable root can be obtained
        """
        if args.destination:
            return normalize_root(args.destination)
        if config.destination:
            logger.debug(f"Using destination from {config.source}")
            return normalize_root(config.destination)
        return prompter.ask_destination()

    def _list(self, args, config, registry, detector, reporter) -> int:
        """Print the registry with detection state (``--list``)."""
        root = None
        destination = args.destination or config.destination
        if destination:
            try:
                root = normalize_root(destination)
            except DestinationError as e:
                print_error(str(e))
                return 1

        specs = registry.list_toolchains()
        reporter.toolchain_list(specs, detector.detect(specs), root)
        return 0

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
