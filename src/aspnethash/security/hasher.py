# third-party imports
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

# built-in imports
from base64 import b64encode
from binascii import Error as Base64Error, a2b_base64
from os import urandom

# local imports
from .containers import DecodedBlob, HashParameters, StoredRecord
from .errors import (
    EntropyError,
    MissingDelimiterError,
    PayloadDecodeError,
    PayloadTooShortError,
)
from .types import HashScheme


def _b64(data: bytes) -> str:
    return b64encode(data).decode("ascii")


def _to_bytes(text: str) -> bytes:
    # surrogateescape restores input bytes that were not valid UTF-8
    return text.encode("utf-8", "surrogateescape")


class AspNetHasher:

    MVC4_SALT_SIZE = 16
    """mvc4 blobs always carry a 16 byte salt."""
    MVC4_VERSION_TAG = b"\x00"
    """Leading format byte of a SimpleMembershipProvider hash."""
    MIN_BLOB_LENGTH = 1 + MVC4_SALT_SIZE
    TARGET_ALGORITHM = "sha1"

    @classmethod
    def generate_salt(cls, n: int = MVC4_SALT_SIZE) -> bytes:
        """Generates a random salt of size n.

        Args:
            n (int, optional): The size of the salt in bytes. Defaults to 16.

        Raises:
            EntropyError: If the OS random source failed.

        Returns:
            bytes: The salt.
        """
        try:
            return urandom(n)
        except OSError as e:
            raise EntropyError(f"Could not read {n} random bytes: {e}") from e

    @classmethod
    def derive_subkey(
        cls, plaintext: str, salt: bytes, params: HashParameters | None = None
    ) -> bytes:
        """Derive a PBKDF2-HMAC-SHA1 subkey.

        Args:
            plaintext (str): The password.
            salt (bytes): The salt.
            params (HashParameters | None, optional): Iterations and subkey length.
                If None, will use the ASP.NET defaults. Defaults to None.

        Returns:
            bytes: The subkey of params.subkey_length bytes.
        """
        params = params or HashParameters()
        return PBKDF2HMAC(
            algorithm=hashes.SHA1(),
            length=params.subkey_length,
            salt=salt,
            iterations=params.iterations,
        ).derive(_to_bytes(plaintext))

    @classmethod
    def digest(cls, plaintext: str) -> bytes:
        """Single unsalted SHA-256 digest of the plaintext."""
        hasher = hashes.Hash(hashes.SHA256())
        hasher.update(_to_bytes(plaintext))
        return hasher.finalize()

    @classmethod
    def generate(
        cls,
        plaintext: str,
        scheme: HashScheme = "mvc4",
        params: HashParameters | None = None,
    ) -> str:
        """Hash a plaintext the way ASP.NET stores it.

        mvc4 yields base64(0x00 + salt + subkey). webforms yields
        base64(salt + sha256) followed by a comma and base64(salt). The webforms
        salt is stored but never mixed into the digest.

        Args:
            plaintext (str): The password to hash. May be empty.
            scheme (HashScheme, optional): "mvc4" or "webforms". Defaults to "mvc4".
            params (HashParameters | None, optional): Hashing parameters. If None,
                will use the ASP.NET defaults. Defaults to None.

        Raises:
            EntropyError: If no salt could be generated.
            ValueError: If scheme is unknown.

        Returns:
            str: The encoded hash line without a trailing newline.
        """
        params = params or HashParameters()

        match scheme:
            case "mvc4":
                salt = cls.generate_salt(cls.MVC4_SALT_SIZE)
                subkey = cls.derive_subkey(plaintext, salt, params)
                return _b64(cls.MVC4_VERSION_TAG + salt + subkey)
            case "webforms":
                salt = cls.generate_salt(params.salt_size)
                return f"{_b64(salt + cls.digest(plaintext))},{_b64(salt)}"
            case _:
                raise ValueError(f"Unknown hash scheme: {scheme}")

    @classmethod
    def parse_record(
        cls, line: str, username_present: bool = False, delimiter: str = ","
    ) -> StoredRecord:
        """Split a stored hash line into username and payload.

        Args:
            line (str): The raw input line.
            username_present (bool, optional): Whether the line starts with
                <username><delimiter>. Defaults to False.
            delimiter (str, optional): The username delimiter. Defaults to ",".

        Raises:
            MissingDelimiterError: If username_present and delimiter is not in line.

        Returns:
            StoredRecord: The verbatim username (None if absent) and the
                stripped payload.
        """
        if not username_present:
            return StoredRecord(username=None, payload=line.strip())

        username, sep, payload = line.partition(delimiter)
        if not sep:
            raise MissingDelimiterError("Invalid line format: missing delimiter")
        return StoredRecord(username=username, payload=payload.strip())

    @classmethod
    def decode_blob(cls, payload: str) -> DecodedBlob:
        """Decode a base64 mvc4 payload.

        Args:
            payload (str): The base64 payload.

        Raises:
            PayloadDecodeError: If payload is not valid base64.
            PayloadTooShortError: If payload decodes to less than 17 bytes.

        Returns:
            DecodedBlob: Tag byte, 16 byte salt and the remaining digest.
        """
        try:
            decoded = a2b_base64(payload.encode("ascii"), strict_mode=True)
        except (Base64Error, UnicodeEncodeError) as e:
            raise PayloadDecodeError(f"Error decoding Base64: {e}") from e

        if len(decoded) < cls.MIN_BLOB_LENGTH:
            raise PayloadTooShortError(
                f"Decoded bytes too short: {len(decoded)} < {cls.MIN_BLOB_LENGTH}"
            )

        return DecodedBlob(
            tag=decoded[0],
            salt=decoded[1 : cls.MIN_BLOB_LENGTH],
            digest=decoded[cls.MIN_BLOB_LENGTH :],
        )

    @classmethod
    def format_record(
        cls, blob: DecodedBlob, iterations: int, username: str | None = None
    ) -> str:
        fields = [
            cls.TARGET_ALGORITHM,
            str(iterations),
            _b64(blob.salt),
            _b64(blob.digest),
        ]
        if username is not None:
            fields.insert(0, username)
        return ":".join(fields)

    @classmethod
    def convert(
        cls,
        line: str,
        username_present: bool = False,
        delimiter: str = ",",
        iterations: int = HashParameters().iterations,
    ) -> str:
        """Convert a stored mvc4 hash into a hashcat mode 12000 line.

        The blob carries no iteration count, so iterations must match the value
        the hash was created with or the result won't crack.

        Args:
            line (str): The raw input line.
            username_present (bool, optional): Whether the line starts with
                <username><delimiter>. Defaults to False.
            delimiter (str, optional): The username delimiter. Defaults to ",".
            iterations (int, optional): PBKDF2 iterations to embed. Defaults to 1000.

        Raises:
            LineError: If the line is malformed.

        Returns:
            str: [<username>:]sha1:<iterations>:<salt>:<digest>
        """
        record = cls.parse_record(line, username_present, delimiter)
        return cls.format_record(
            cls.decode_blob(record.payload), iterations, record.username
        )
