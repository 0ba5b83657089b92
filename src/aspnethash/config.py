from argparse import Namespace
from typing import NamedTuple

from .security.containers import HashParameters
from .security.errors import ConfigurationError
from .security.types import HashScheme, HashSchemeArgs, WorkMode

DEFAULT_MODE = "default"
DEFAULT_DELIMITER = ","


class RunConfig(NamedTuple):
    """Validated settings of a single run."""

    work_mode: WorkMode
    scheme: HashScheme | None
    username_present: bool
    delimiter: str
    rate_limit: int
    max_workers: int
    quiet: bool
    params: HashParameters

    @property
    def work_type(self) -> str:
        """What a single input line is called in log messages."""
        return "lines" if self.work_mode == "generate" else "hashes"


def build_config(args: Namespace) -> RunConfig:
    """Validate parsed command line arguments.

    Args:
        args (Namespace): The result of the argument parser.

    Raises:
        ConfigurationError: If options are invalid or don't fit together.

    Returns:
        RunConfig: The validated settings.
    """
    mode = args.mode.lower()
    if mode != DEFAULT_MODE and mode not in HashSchemeArgs:
        raise ConfigurationError("Invalid mode. Choose between MVC4 and WebForms.")

    if args.generate:
        if args.username:
            raise ConfigurationError(
                "--generate and --username flags are mutually exclusive."
            )
        scheme = "mvc4" if mode == DEFAULT_MODE else mode
    else:
        if mode != DEFAULT_MODE:
            raise ConfigurationError(
                "Hash type selection is not supported in convert mode."
            )
        scheme = None

    if args.delimiter != DEFAULT_DELIMITER and not args.username:
        raise ConfigurationError(
            "--delimiter can only be used when --username is also used."
        )
    if not args.delimiter:
        raise ConfigurationError("--delimiter must not be empty.")

    for name in ("rate_limit", "max_workers"):
        if getattr(args, name) < 0:
            raise ConfigurationError(
                f"--{name.replace('_', '-')} must not be negative."
            )

    params = HashParameters(
        iterations=args.iter,
        subkey_length=args.subkey_length,
        salt_size=args.salt_size,
    )
    for name, value in params._asdict().items():
        if value <= 0:
            raise ConfigurationError(f"{name.replace('_', ' ')} must be positive.")

    return RunConfig(
        work_mode="generate" if args.generate else "convert",
        scheme=scheme,
        username_present=args.username,
        delimiter=args.delimiter,
        rate_limit=args.rate_limit,
        max_workers=args.max_workers,
        quiet=args.quiet,
        params=params,
    )
