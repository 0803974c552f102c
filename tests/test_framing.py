"""Tests for archive framing: header layout, build/parse and filenames."""

from datetime import datetime, timezone

import pytest

from project_backup.archive.compression import ZstdCodec
from project_backup.archive.crypto import NONCE_SIZE, SALT_SIZE, derive_backup_key, encrypt
from project_backup.archive.framing import (
    FILE_EXTENSION,
    FORMAT_VERSION,
    HEADER_SIZE,
    MAGIC,
    ArchiveHeader,
    backup_filename,
    build_archive,
    parse_archive,
    read_header,
    sanitize_filename,
)
from project_backup.backup.models import BackupPayload, MemberBackup, ProjectBackup
from project_backup.errors import (
    DecryptionFailedError,
    FormatInvalidError,
    VersionUnsupportedError,
)

from conftest import FAST_ARGON2, PASSWORD, TEST_PEPPER


@pytest.fixture
def payload() -> BackupPayload:
    return BackupPayload(
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        project=ProjectBackup(id="a" * 32, name="Demo"),
        member=MemberBackup(public_key="pub"),
    )


def _build(payload: BackupPayload, codec: ZstdCodec, password: str = PASSWORD) -> bytes:
    return build_archive(payload, password, codec=codec, pepper=TEST_PEPPER, params=FAST_ARGON2)


def _parse(data: bytes, codec: ZstdCodec, password: str = PASSWORD) -> BackupPayload:
    return parse_archive(data, password, codec=codec, pepper=TEST_PEPPER, params=FAST_ARGON2)


# ============================================================================
# Test: Header
# ============================================================================


class TestHeader:
    """Bit-exact 50-byte header."""

    def test_header_size(self):
        assert HEADER_SIZE == 50

    def test_layout(self, payload, codec):
        data = _build(payload, codec)
        assert data[0:5] == b"INFBK"
        assert data[5] == 1
        header = read_header(data)
        assert header.nonce == data[6:18]
        assert header.salt == data[18:50]
        assert len(header.nonce) == NONCE_SIZE
        assert len(header.salt) == SALT_SIZE

    def test_pack_unpack(self):
        header = ArchiveHeader(version=FORMAT_VERSION, nonce=b"n" * 12, salt=b"s" * 32)
        packed = header.pack()
        assert len(packed) == HEADER_SIZE
        assert ArchiveHeader.unpack(packed) == header

    def test_two_builds_differ(self, payload, codec):
        a = _build(payload, codec)
        b = _build(payload, codec)
        assert a[6:50] != b[6:50]
        assert a != b


# ============================================================================
# Test: Round trip
# ============================================================================


class TestRoundTrip:
    """build_archive -> parse_archive."""

    def test_round_trip(self, payload, codec):
        restored = _parse(_build(payload, codec), codec)
        assert restored == payload

    def test_payload_json_is_compressed_then_encrypted(self, payload, codec):
        data = _build(payload, codec)
        assert b"Demo" not in data


# ============================================================================
# Test: Rejections
# ============================================================================


class TestRejections:
    """Each malformed input maps to exactly one error kind."""

    def test_truncated_header(self, codec):
        with pytest.raises(FormatInvalidError) as exc_info:
            _parse(MAGIC + b"\x01", codec)
        assert exc_info.value.step == "header"

    def test_empty_input(self, codec):
        with pytest.raises(FormatInvalidError):
            _parse(b"", codec)

    def test_bad_magic(self, payload, codec):
        data = bytearray(_build(payload, codec))
        data[0:5] = b"XXXXX"
        with pytest.raises(FormatInvalidError):
            _parse(bytes(data), codec)

    def test_unsupported_version(self, payload, codec):
        data = bytearray(_build(payload, codec))
        data[5] = 2
        with pytest.raises(VersionUnsupportedError):
            _parse(bytes(data), codec)

    def test_wrong_password(self, payload, codec):
        data = _build(payload, codec)
        with pytest.raises(DecryptionFailedError):
            _parse(data, codec, password="WrongHorse1")

    def test_wrong_pepper(self, payload, codec):
        data = _build(payload, codec)
        with pytest.raises(DecryptionFailedError):
            parse_archive(data, PASSWORD, codec=codec, pepper=b"other", params=FAST_ARGON2)

    @pytest.mark.parametrize("region", ["nonce", "salt", "ciphertext", "tag"])
    def test_tampered_byte(self, payload, codec, region):
        data = bytearray(_build(payload, codec))
        index = {
            "nonce": 6,
            "salt": 18,
            "ciphertext": HEADER_SIZE,
            "tag": len(data) - 1,
        }[region]
        data[index] ^= 0x01
        with pytest.raises(DecryptionFailedError):
            _parse(bytes(data), codec)

    def test_header_only(self, payload, codec):
        data = _build(payload, codec)[:HEADER_SIZE]
        with pytest.raises(DecryptionFailedError):
            _parse(data, codec)

    def test_authentic_but_not_zstd(self, codec):
        header, body = self._seal(b"plain bytes, not a zstd frame")
        with pytest.raises(FormatInvalidError) as exc_info:
            _parse(header + body, codec)
        assert exc_info.value.step == "decompress"

    def test_authentic_but_not_a_payload(self, codec):
        header, body = self._seal(codec.compress(b'{"hello": "world"}'))
        with pytest.raises(FormatInvalidError) as exc_info:
            _parse(header + body, codec)
        assert exc_info.value.step == "decode"

    def test_authentic_but_not_json(self, codec):
        header, body = self._seal(codec.compress(b"\xff\xfe not json"))
        with pytest.raises(FormatInvalidError):
            _parse(header + body, codec)

    @staticmethod
    def _seal(plaintext: bytes) -> tuple[bytes, bytes]:
        salt = b"s" * SALT_SIZE
        key = derive_backup_key(PASSWORD, TEST_PEPPER, salt, FAST_ARGON2)
        nonce, ciphertext = encrypt(plaintext, key)
        return ArchiveHeader(version=FORMAT_VERSION, nonce=nonce, salt=salt).pack(), ciphertext


# ============================================================================
# Test: Filenames
# ============================================================================


class TestFilenames:
    """sanitize_filename and backup_filename."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("My Project! #1", "My_Project_1"),
            ("already_safe-name", "already_safe-name"),
            ("   ", "___"),
            ("!!!", "backup"),
            ("", "backup"),
            ("café/../etc", "cafetc"),
        ],
    )
    def test_sanitize(self, name, expected):
        assert sanitize_filename(name) == expected

    def test_backup_filename(self):
        now = datetime(2026, 3, 4, 5, 6, 7)
        assert backup_filename("My Project! #1", now) == "My_Project_1_20260304_050607.infbk"

    def test_backup_filename_default_now(self):
        name = backup_filename("Demo")
        assert name.startswith("Demo_")
        assert name.endswith(FILE_EXTENSION)
