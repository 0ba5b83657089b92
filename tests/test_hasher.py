from __future__ import annotations

import base64
import hashlib

import pytest

from aspnethash.security import hasher as hasher_module
from aspnethash.security.containers import DecodedBlob, HashParameters, StoredRecord
from aspnethash.security.errors import (
    EntropyError,
    LineError,
    MissingDelimiterError,
    PayloadDecodeError,
    PayloadTooShortError,
)
from aspnethash.security.hasher import AspNetHasher

ZERO_BLOB = base64.b64encode(bytes(1 + 16 + 32)).decode("ascii")
ZERO_SALT_B64 = "A" * 22 + "=="
ZERO_DIGEST_B64 = "A" * 43 + "="


def test_mvc4_generate_layout() -> None:
    line = AspNetHasher.generate("hunter2")
    blob = base64.b64decode(line, validate=True)
    assert "\n" not in line
    assert len(blob) == 1 + 16 + 32
    assert blob[0] == 0
    salt, subkey = blob[1:17], blob[17:]
    assert subkey == hashlib.pbkdf2_hmac("sha1", b"hunter2", salt, 1000, 32)


def test_mvc4_generate_custom_parameters_force_salt_size() -> None:
    params = HashParameters(iterations=5, subkey_length=20, salt_size=8)
    blob = base64.b64decode(AspNetHasher.generate("pw", "mvc4", params))
    assert len(blob) == 1 + 16 + 20
    assert blob[17:] == hashlib.pbkdf2_hmac("sha1", b"pw", blob[1:17], 5, 20)


def test_mvc4_generate_uses_fresh_salt() -> None:
    assert AspNetHasher.generate("same") != AspNetHasher.generate("same")


def test_webforms_generate_layout() -> None:
    line = AspNetHasher.generate("hunter2", "webforms")
    assert line.count(",") == 1
    combined_b64, salt_b64 = line.split(",")
    combined = base64.b64decode(combined_b64, validate=True)
    salt = base64.b64decode(salt_b64, validate=True)
    assert len(salt) == 16
    assert combined[:16] == salt
    # the salt is stored but not hashed
    assert combined[16:] == hashlib.sha256(b"hunter2").digest()


@pytest.mark.parametrize("salt_size", [1, 8, 24])
def test_webforms_generate_salt_size(salt_size: int) -> None:
    params = HashParameters(salt_size=salt_size)
    combined_b64, salt_b64 = AspNetHasher.generate("", "webforms", params).split(",")
    assert len(base64.b64decode(salt_b64)) == salt_size
    assert len(base64.b64decode(combined_b64)) == salt_size + 32


def test_generate_empty_plaintext() -> None:
    blob = base64.b64decode(AspNetHasher.generate(""))
    assert blob[17:] == hashlib.pbkdf2_hmac("sha1", b"", blob[1:17], 1000, 32)


def test_generate_keeps_undecodable_bytes() -> None:
    plaintext = b"caf\xe9".decode("utf-8", "surrogateescape")
    combined_b64, _ = AspNetHasher.generate(plaintext, "webforms").split(",")
    assert base64.b64decode(combined_b64)[16:] == hashlib.sha256(b"caf\xe9").digest()


def test_generate_unknown_scheme() -> None:
    with pytest.raises(ValueError):
        AspNetHasher.generate("pw", "sha512")  # type: ignore[arg-type]


def test_generate_entropy_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_urandom(n: int) -> bytes:
        raise OSError("no entropy")

    monkeypatch.setattr(hasher_module, "urandom", broken_urandom)
    with pytest.raises(EntropyError):
        AspNetHasher.generate("pw")
    with pytest.raises(EntropyError):
        AspNetHasher.generate("pw", "webforms")


def test_convert_zero_blob() -> None:
    assert AspNetHasher.convert(ZERO_BLOB) == (
        f"sha1:1000:{ZERO_SALT_B64}:{ZERO_DIGEST_B64}"
    )


def test_convert_with_username() -> None:
    line = AspNetHasher.convert(f"alice, {ZERO_BLOB} ", username_present=True)
    assert line == f"alice:sha1:1000:{ZERO_SALT_B64}:{ZERO_DIGEST_B64}"


def test_convert_splits_at_first_delimiter_only() -> None:
    # the payload keeps the trailing delimiter and fails to decode
    with pytest.raises(PayloadDecodeError):
        AspNetHasher.convert(f"bob;{ZERO_BLOB};", True, ";")


def test_convert_username_untrimmed() -> None:
    line = AspNetHasher.convert(f" bob ::{ZERO_BLOB}", True, "::", iterations=1)
    assert line == f" bob :sha1:1:{ZERO_SALT_B64}:{ZERO_DIGEST_B64}"


def test_convert_empty_username() -> None:
    assert AspNetHasher.convert(f",{ZERO_BLOB}", True).startswith(":sha1:1000:")


def test_convert_missing_delimiter() -> None:
    with pytest.raises(MissingDelimiterError):
        AspNetHasher.convert(ZERO_BLOB, username_present=True, delimiter=";")


@pytest.mark.parametrize(
    "payload",
    [
        "not base64!",
        "AAA",
        "A" * 65,
        "Zm9vé",
        base64.b64encode(bytes(48)).decode("ascii") + "==",
        "=" + ZERO_BLOB,
    ],
)
def test_convert_invalid_base64(payload: str) -> None:
    with pytest.raises(PayloadDecodeError):
        AspNetHasher.convert(payload)


@pytest.mark.parametrize("length", [0, 1, 16])
def test_convert_too_short(length: int) -> None:
    payload = base64.b64encode(bytes(length)).decode("ascii")
    with pytest.raises(PayloadTooShortError):
        AspNetHasher.convert(payload)


def test_convert_minimum_length_has_empty_digest() -> None:
    payload = base64.b64encode(bytes([1]) + bytes(range(16))).decode("ascii")
    salt_b64 = base64.b64encode(bytes(range(16))).decode("ascii")
    assert AspNetHasher.convert(payload) == f"sha1:1000:{salt_b64}:"


def test_convert_errors_are_line_errors() -> None:
    for error in (MissingDelimiterError, PayloadDecodeError, PayloadTooShortError):
        assert issubclass(error, LineError)


def test_convert_is_deterministic() -> None:
    line = AspNetHasher.generate("pw")
    assert AspNetHasher.convert(line) == AspNetHasher.convert(line)


@pytest.mark.parametrize("plaintext", ["", "password", "pässwörd", " x "])
def test_generate_then_convert_round_trip(plaintext: str) -> None:
    params = HashParameters(iterations=1000, subkey_length=32)
    generated = AspNetHasher.generate(plaintext, "mvc4", params)
    blob = base64.b64decode(generated)

    fields = AspNetHasher.convert(generated, iterations=params.iterations).split(":")
    assert len(fields) == 4
    assert fields[:2] == ["sha1", "1000"]
    assert base64.b64decode(fields[2]) == blob[1:17]
    assert base64.b64decode(fields[3]) == blob[17:]
    assert base64.b64decode(fields[3]) == hashlib.pbkdf2_hmac(
        "sha1", plaintext.encode("utf-8"), blob[1:17], 1000, 32
    )


def test_parse_record() -> None:
    assert AspNetHasher.parse_record("  abc \n") == StoredRecord(None, "abc")
    assert AspNetHasher.parse_record("u,p,q", True) == StoredRecord("u", "p,q")


def test_decode_blob() -> None:
    blob = AspNetHasher.decode_blob(ZERO_BLOB)
    assert blob == DecodedBlob(tag=0, salt=bytes(16), digest=bytes(32))
