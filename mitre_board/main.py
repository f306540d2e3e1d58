#!/usr/bin/env python3
"""
MITRE ATT&CK Coverage Board - Main Application
==============================================

Command-line entry point. It scans the rule directories, loads the ATT&CK
taxonomy and then serves the board over HTTP until interrupted.

Startup is all-or-nothing: an invalid rule directory or an unreachable
taxonomy ends the process with exit code 1 before the server binds a port.

Usage Examples:
    # Active rules only, taxonomy fetched from GitHub
    mitre-board -d /path/to/rules

    # Active and not-yet-implemented rules, on a custom port
    PORT=8080 mitre-board -d rules/active -n rules/backlog

    # Offline, with a local copy of enterprise-attack.json and the web client
    mitre-board -d rules --taxonomy-file enterprise-attack.json --static-dir dist
"""

import argparse
import logging
import os
import sys
import traceback
from typing import List, Optional

import uvicorn

from . import config
from .core.board_context import BoardSettings, build_context
from .errors import BoardError, ConfigurationError
from .server.app import create_app
from .utils.logging_config import setup_logging
from .validators.path_validator import PathValidator

logger = logging.getLogger(__name__)


class BoardSession:
    """
    One run of the board: build the context, then serve it.

    Attributes:
        settings: Validated runtime configuration
    """

    def __init__(self, settings: BoardSettings):
        self.settings = settings

    def run(self) -> int:
        """
        Build the board and serve it until the server stops.

        Returns:
            int: Exit code (0 for a clean shutdown)

        Raises:
            BoardError: If the board cannot be built
        """
        logger.info(f"Active rules directory: {self.settings.active_directory}")
        if self.settings.inactive_directory:
            logger.info(f"Inactive rules directory: {self.settings.inactive_directory}")

        context = build_context(self.settings)
        app = create_app(context, static_dir=self.settings.static_dir)

        logger.info(f"Starting server on http://{self.settings.host}:{self.settings.port} ...")
        uvicorn.run(
            app,
            host=self.settings.host,
            port=self.settings.port,
            log_config=None,  # keep the handlers installed by setup_logging
        )
        return 0


def setup_argument_parser() -> argparse.ArgumentParser:
    """
    Configure the command-line argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="mitre-board",
        description=f"{config.APPLICATION_NAME} v{config.VERSION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Active rules only
  mitre-board -d /path/to/rules

  # Active and not-yet-implemented rules
  mitre-board -d rules/active -n rules/backlog --port 8080

  # Offline taxonomy and a bundled web client
  mitre-board -d rules --taxonomy-file enterprise-attack.json --static-dir dist
        """
    )

    rules = parser.add_argument_group('Rule Directories')
    rules.add_argument(
        "-d", "--directory",
        type=str,
        required=True,
        help="Directory containing active (implemented) rule definitions"
    )
    rules.add_argument(
        "-n", "--directory-not-implemented",
        type=str,
        help="Directory containing inactive (not yet implemented) rule definitions"
    )

    taxonomy = parser.add_argument_group('Taxonomy Source')
    source = taxonomy.add_mutually_exclusive_group()
    source.add_argument(
        "--taxonomy-url",
        type=str,
        default=config.MITRE_ATTACK_URL,
        help="URL of the ATT&CK Enterprise STIX bundle (default: MITRE CTI on GitHub)"
    )
    source.add_argument(
        "--taxonomy-file",
        type=str,
        help="Read the STIX bundle from a local file instead of fetching it"
    )

    server = parser.add_argument_group('Server Options')
    server.add_argument(
        "--host",
        type=str,
        default=config.DEFAULT_HOST,
        help=f"Interface to bind to (default: {config.DEFAULT_HOST})"
    )
    server.add_argument(
        "--port",
        type=int,
        help=f"Port to listen on (default: ${config.PORT_ENV_VAR} or {config.DEFAULT_PORT})"
    )
    server.add_argument(
        "--static-dir",
        type=str,
        help="Directory with the browser client, served at /"
    )

    debug = parser.add_argument_group('Logging Options')
    debug.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging verbosity level (default: INFO)"
    )
    debug.add_argument(
        "--log-file",
        type=str,
        help="Path to save log output to file (in addition to console)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"{config.APPLICATION_NAME} v{config.VERSION}"
    )

    return parser


def resolve_port(cli_port: Optional[int]) -> int:
    """
    Pick the listening port: command line, then the PORT variable, then the default.

    Raises:
        ConfigurationError: If the chosen value is not a valid TCP port
    """
    if cli_port is not None:
        port = cli_port
    else:
        raw = os.environ.get(config.PORT_ENV_VAR)
        if raw is None or not raw.strip():
            port = config.DEFAULT_PORT
        else:
            try:
                port = int(raw)
            except ValueError:
                raise ConfigurationError(f"Invalid {config.PORT_ENV_VAR} environment variable: {raw!r}")

    if not 0 < port < 65536:
        raise ConfigurationError(f"Port must be between 1 and 65535, got {port}")
    return port


def build_settings(args: argparse.Namespace) -> BoardSettings:
    """
    Turn parsed arguments into BoardSettings.

    Rule directories are validated later by build_context; only options the
    server itself needs are checked here.

    Raises:
        ConfigurationError: If an option is invalid
    """
    return BoardSettings(
        active_directory=args.directory,
        inactive_directory=args.directory_not_implemented,
        taxonomy_url=args.taxonomy_url,
        taxonomy_file=args.taxonomy_file,
        host=args.host,
        port=resolve_port(args.port),
        static_dir=PathValidator.optional_directory(args.static_dir, "static client directory"),
        log_level=args.log_level,
        log_file=args.log_file,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main application entry point.

    Args:
        argv: Command-line arguments (sys.argv[1:] if None)

    Returns:
        int: Exit code (0 for success, non-zero for error)
    """
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(args.log_level, args.log_file, enable_colors=True)
        print(config.get_banner())

        settings = build_settings(args)
        session = BoardSession(settings)
        return session.run()

    except BoardError as e:
        logger.error(f"Startup failed: {e}")
        return 1

    except KeyboardInterrupt:
        print("\n\nServer interrupted by user.")
        return 130

    except Exception as e:
        if logger.isEnabledFor(logging.DEBUG):
            logger.error(f"Unexpected error: {str(e)}\n{traceback.format_exc()}")
        else:
            print(f"\nError: {str(e)}")
            print("Run with --log-level DEBUG for detailed error information")
        return 1


if __name__ == "__main__":
    sys.exit(main())
