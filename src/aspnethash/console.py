from collections.abc import Iterator
from threading import Lock
from typing import BinaryIO

from .security.errors import LineSourceError, OutputError


def iter_lines(stream: BinaryIO) -> Iterator[str]:
    """Yield the lines of a binary stream without their line endings.

    Args:
        stream (BinaryIO): The stream to read, e.g. sys.stdin.buffer.

    Raises:
        LineSourceError: If reading from the stream failed.

    Yields:
        str: Each line, decoded as UTF-8 with surrogateescape.
    """
    while True:
        try:
            raw = stream.readline()
        except OSError as e:
            raise LineSourceError(f"Input stream encountered an error: {e}") from e
        if not raw:
            return
        yield raw.removesuffix(b"\n").removesuffix(b"\r").decode(
            "utf-8", "surrogateescape"
        )


class LineWriter:

    def __init__(self, stream: BinaryIO) -> None:
        """Write whole lines to a binary stream from any thread.

        Args:
            stream (BinaryIO): The stream to write to, e.g. sys.stdout.buffer.
        """
        self.stream = stream
        self._lock = Lock()

    def __call__(self, line: str) -> None:
        """Write line and a newline.

        Raises:
            OutputError: If the stream could not be written to.
        """
        data = line.encode("utf-8", "surrogateescape") + b"\n"
        with self._lock:
            try:
                self.stream.write(data)
            except OSError as e:
                raise OutputError(f"Could not write output: {e}") from e

    def flush(self) -> None:
        with self._lock:
            try:
                self.stream.flush()
            except OSError as e:
                raise OutputError(f"Could not flush output: {e}") from e
