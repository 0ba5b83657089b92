# third-party imports
from loguru import logger

# built-in imports
import sys
from argparse import SUPPRESS, ArgumentParser
from collections.abc import Callable, Sequence
from functools import partial
from typing import BinaryIO

# local imports
from .config import DEFAULT_DELIMITER, DEFAULT_MODE, RunConfig, build_config
from .console import LineWriter, iter_lines
from .logger import Logger
from .pipeline.containers import RunStatistics
from .pipeline.pipeline import Pipeline
from .security.containers import HashParameters
from .security.errors import AspNetHashError, ConfigurationError
from .security.hasher import AspNetHasher

DESCRIPTION = (
    "This application either generates or converts ASP.NET MVC4/Web Forms password"
    " hashes. Convert mode (default) reads hashes from stdin and writes hashcat"
    " mode 12000 compatible hashes to stdout. Generate mode (-g) reads plaintext"
    " from stdin and writes hashes to stdout."
)
ADVANCED_WARNING = (
    "WARNING: Changing these parameters will result in hashes that are"
    " incompatible with ASP.NET."
)


def _add_advanced_arguments(parser: ArgumentParser, show_help: bool) -> None:
    defaults = HashParameters()
    advanced = [
        (("-i", "--iter"), "iter", defaults.iterations, "number of PBKDF2 iterations"),
        (
            ("-l", "--subkey-length"),
            "subkey_length",
            defaults.subkey_length,
            "PBKDF2 subkey length in bytes (256 bits)",
        ),
        (
            ("-s", "--salt-size"),
            "salt_size",
            defaults.salt_size,
            "salt size in bytes (128 bits)",
        ),
    ]
    for flags, dest, default, text in advanced:
        parser.add_argument(
            *flags,
            dest=dest,
            type=int,
            default=default,
            help=f"{text} (default: %(default)s)" if show_help else SUPPRESS,
        )


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="aspnethash", description=DESCRIPTION)
    parser.add_argument(
        "-g",
        "--generate",
        action="store_true",
        help="generate hashes from plaintext input instead of converting",
    )
    parser.add_argument(
        "-M",
        "--mode",
        default=DEFAULT_MODE,
        help="choose between MVC4 (SimpleMembershipProvider) and WebForms"
        " (DefaultMembershipProvider) when generating hashes. Defaults to MVC4",
    )
    parser.add_argument(
        "-u",
        "--username",
        action="store_true",
        help="indicates if the input is prefixed with a username",
    )
    parser.add_argument(
        "-d",
        "--delimiter",
        default=DEFAULT_DELIMITER,
        help="delimiter to split username and salt+hash if --username is used"
        ' (default: "%(default)s")',
    )
    parser.add_argument(
        "-r",
        "--rate-limit",
        type=int,
        default=0,
        help="number of lines per second to process. 0 = no limit",
    )
    parser.add_argument(
        "-m",
        "--max-workers",
        type=int,
        default=0,
        help="maximum number of concurrent workers. 0 = no limit (default)",
    )
    parser.add_argument(
        "-a",
        "--advanced-help",
        action="store_true",
        help="print help message for advanced hashing options",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="suppress output")
    _add_advanced_arguments(parser, show_help=False)
    return parser


def build_advanced_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="aspnethash",
        description="Advanced options:",
        epilog=ADVANCED_WARNING,
        add_help=False,
    )
    _add_advanced_arguments(parser, show_help=True)
    return parser


def build_operation(config: RunConfig) -> Callable[[str], str]:
    """Bind the codec operation selected by config to a single-line callable."""
    if config.work_mode == "generate":
        return partial(
            AspNetHasher.generate, scheme=config.scheme, params=config.params
        )
    return partial(
        AspNetHasher.convert,
        username_present=config.username_present,
        delimiter=config.delimiter,
        iterations=config.params.iterations,
    )


def log_parameter_notes(config: RunConfig) -> None:
    defaults = HashParameters()
    if config.work_mode == "convert":
        if (config.params.subkey_length, config.params.salt_size) != (
            defaults.subkey_length,
            defaults.salt_size,
        ):
            logger.warning(
                "--subkey-length and --salt-size have no effect in convert mode."
            )
        if config.params.iterations != defaults.iterations:
            logger.info(
                f"Embedding {config.params.iterations} PBKDF2 iterations."
                " This must match the count the hashes were created with."
            )
        return

    if config.params != defaults:
        logger.warning(ADVANCED_WARNING)
    if config.scheme == "mvc4" and config.params.salt_size != defaults.salt_size:
        logger.warning(
            f"Salt size is fixed at {AspNetHasher.MVC4_SALT_SIZE} bytes for MVC4."
        )


def log_summary(stats: RunStatistics, config: RunConfig) -> None:
    logger.info(f"Done! Total Run Time: {stats.elapsed:f} seconds")
    logger.info(f"Processed {stats.processed} {config.work_type}")
    logger.info(f"Errored {config.work_type}: {stats.errored}")
    if stats.elapsed > 0:
        logger.info(f"{config.work_type.capitalize()} per second: {stats.rate:f}")


def main(
    argv: Sequence[str] | None = None,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> int:
    """Run the command line tool.

    Args:
        argv (Sequence[str] | None, optional): Arguments without the program name.
            If None, will use sys.argv. Defaults to None.
        stdin (BinaryIO | None, optional): Input stream. If None, will use
            sys.stdin. Defaults to None.
        stdout (BinaryIO | None, optional): Output stream. If None, will use
            sys.stdout. Defaults to None.

    Returns:
        int: The exit status.
    """
    args = build_parser().parse_args(argv)

    if args.advanced_help:
        build_advanced_parser().print_help()
        return 0

    try:
        config = build_config(args)
    except ConfigurationError as e:
        Logger.configure()
        logger.error(f"Error: {e}")
        return 1

    Logger.configure(quiet=config.quiet)
    log_parameter_notes(config)

    writer = LineWriter(stdout or sys.stdout.buffer)
    pipeline = Pipeline(
        operation=build_operation(config),
        emit=writer,
        rate_limit=config.rate_limit,
        max_workers=config.max_workers,
    )

    logger.info(f"Processing {config.work_type} from stdin...")
    try:
        try:
            stats = pipeline.run_sync(iter_lines(stdin or sys.stdin.buffer))
        finally:
            writer.flush()
    except AspNetHashError as e:
        logger.error(str(e))
        if pipeline.stats is not None:
            log_summary(pipeline.stats, config)
        return 1

    log_summary(stats, config)
    return 0
