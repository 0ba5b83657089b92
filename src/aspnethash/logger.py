import sys

from loguru import logger


class Logger:

    FORMAT = "{time:YYYY-MM-DD HH:mm:ss}::{level}::{message}"

    @classmethod
    def configure(cls, quiet: bool = False, level: str = "INFO") -> None:
        """Send log messages to stderr, or nowhere if quiet.

        Args:
            quiet (bool, optional): Drop all log messages. Defaults to False.
            level (str, optional): Minimum level to log. Defaults to "INFO".
        """
        logger.remove()
        if not quiet:
            logger.add(sys.stderr, format=cls.FORMAT, level=level, colorize=False)
