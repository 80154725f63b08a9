# File: modelgen/cli.py
"""
modelgen - Command-Line Interface
===================================

Built with the standard-library ``argparse`` module.

Usage examples::

    # Generate every class of a YAML schema into a cache directory
    python -m modelgen --schema schema.yaml --cache .cache/models

    # Reflect a live database
    python -m modelgen -d sqlite:///app.db -n app.models -c .cache/models

    # Print the generated record class of one table
    python -m modelgen -s schema.yaml --show-record users

    # Print the schema fingerprint of one table
    python -m modelgen -s schema.yaml --checksum users

Exit codes:
    0 — success
    1 — generation error (at least one table failed)
    2 — schema source unavailable
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, List, NoReturn, Optional, Sequence, Union

from sqlalchemy.exc import ArgumentError

if TYPE_CHECKING:
    from modelgen.generator import ModelGenerator
    from modelgen.models import GeneratorConfig
    from modelgen.schema import InMemorySchemaSource, SQLAlchemySchemaSource

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_GENERATION_ERROR: int = 1
EXIT_CONNECTION_ERROR: int = 2
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the modelgen logger based on verbosity level.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("modelgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from modelgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="modelgen",
        description=(
            "modelgen — table gateway and record class generator.\n\n"
            "Reads table metadata from a schema file or a live database and "
            "generates one gateway and one record class per table, cached as "
            "Python modules that are regenerated when the schema changes."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml -c .cache/models\n"
            "  %(prog)s -d sqlite:///app.db -n app.models -c .cache/models\n"
            "  %(prog)s -s schema.yaml --show-record users\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"modelgen v{__version__}",
    )

    # --- Schema source ---
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "-s", "--schema",
        type=str,
        metavar="PATH",
        help="Schema file (YAML or JSON) describing the tables.",
    )
    source.add_argument(
        "-d", "--database-url",
        type=str,
        metavar="URL",
        help="SQLAlchemy database URL to reflect the tables from.",
    )

    # --- Configuration ---
    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        default=None,
        help="Generator config file (YAML or JSON).",
    )
    parser.add_argument(
        "-n", "--namespace",
        type=str,
        default=None,
        help="Model namespace of the generated classes (e.g. app.models).",
    )
    parser.add_argument(
        "-c", "--cache",
        type=str,
        metavar="DIR",
        default=None,
        help="Cache directory for generated modules (default: in memory only).",
    )
    parser.add_argument(
        "--base-namespace",
        type=str,
        default=None,
        help="Sub-namespace of the generated base classes (default: base).",
    )

    # --- Mode ---
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--show-record",
        metavar="TABLE",
        default=None,
        help="Print the generated record class of TABLE and exit.",
    )
    mode.add_argument(
        "--show-table",
        metavar="TABLE",
        default=None,
        help="Print the generated table gateway class of TABLE and exit.",
    )
    mode.add_argument(
        "--checksum",
        metavar="TABLE",
        default=None,
        help="Print the schema fingerprint of TABLE and exit.",
    )

    # --- Verbosity ---
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v INFO, -vv DEBUG).",
    )
    verbosity.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Only log errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_config(args: argparse.Namespace) -> GeneratorConfig:
    """Load the config file (if any) and apply command-line overrides."""
    from modelgen.generator import load_config_file
    from modelgen.models import GeneratorConfig

    config: GeneratorConfig = (
        load_config_file(Path(args.config)) if args.config else GeneratorConfig()
    )
    if args.namespace:
        config.model_namespace = args.namespace
    if args.cache:
        config.cache_path = Path(args.cache).resolve()
    if args.base_namespace:
        config.base_namespace = args.base_namespace
    return config


def _build_source(
    args: argparse.Namespace,
) -> Union[InMemorySchemaSource, SQLAlchemySchemaSource]:
    from modelgen.schema import InMemorySchemaSource, SQLAlchemySchemaSource

    if args.schema:
        return InMemorySchemaSource.from_file(Path(args.schema).resolve())
    return SQLAlchemySchemaSource(args.database_url)


def _run(generator: ModelGenerator, args: argparse.Namespace) -> int:
    """Run the selected mode.  Returns the exit code."""
    if args.checksum:
        print(generator.fingerprint(args.checksum))
        return EXIT_SUCCESS

    if args.show_record:
        print(generator.generate_record(args.show_record))
        return EXIT_SUCCESS

    if args.show_table:
        print(generator.generate_table(args.show_table))
        return EXIT_SUCCESS

    report = generator.warm_cache()
    print(report.summary())
    return EXIT_SUCCESS if report.success else EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    from modelgen.errors import ConnectionUnavailable, SchemaNotFound, UnsynthesizableField
    from modelgen.generator import ModelGenerator

    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    # --- Inputs ---
    try:
        config = _build_config(args)
        source = _build_source(args)
    except (FileNotFoundError, ValueError, ArgumentError) as exc:
        logger.error("%s", exc)
        sys.exit(EXIT_INPUT_ERROR)

    try:
        generator = ModelGenerator(source, config)
    except (ValueError, ImportError, TypeError, AttributeError) as exc:
        logger.error("%s", exc)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Namespace: %s", generator.model_namespace)
    logger.info("Source:    %s", source.identity)
    logger.info("Cache:     %s", config.cache_path or "(in memory)")

    # --- Run ---
    try:
        exit_code: int = _run(generator, args)
    except ConnectionUnavailable as exc:
        logger.error("%s", exc)
        exit_code = EXIT_CONNECTION_ERROR
    except SchemaNotFound as exc:
        logger.error("%s", exc)
        exit_code = EXIT_INPUT_ERROR
    except UnsynthesizableField as exc:
        logger.error("%s", exc)
        exit_code = EXIT_GENERATION_ERROR
    finally:
        generator.close()
        close = getattr(source, "close", None)
        if close is not None:
            close()

    if exit_code != EXIT_SUCCESS:
        logger.error("modelgen failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_GENERATION_ERROR",
    "EXIT_CONNECTION_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("modelgen.cli loaded.")
