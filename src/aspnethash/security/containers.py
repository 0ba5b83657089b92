from typing import NamedTuple


class HashParameters(NamedTuple):
    iterations: int = 1000
    subkey_length: int = 32
    salt_size: int = 16


class StoredRecord(NamedTuple):
    """A convert input line split into its username and base64 payload."""

    username: str | None
    payload: str


class DecodedBlob(NamedTuple):
    """Binary form of a stored mvc4 hash: version tag, salt and subkey."""

    tag: int
    salt: bytes
    digest: bytes
