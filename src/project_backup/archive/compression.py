"""Zstandard compression codec.

``ZstdCodec`` is constructed once at startup and shared by reference
between concurrent backup and restore operations.  The underlying
compressor and decompressor contexts are created lazily on first use and
reused afterwards; each context is guarded by its own lock because
``zstandard`` contexts are not safe for simultaneous use.

Usage:
    from project_backup.archive.compression import ZstdCodec

    codec = ZstdCodec()
    blob = codec.compress(b'{"version": 1}')
    assert codec.decompress(blob) == b'{"version": 1}'
"""

import threading

import zstandard

# 256 MB ceiling on decompressed output
DEFAULT_MAX_OUTPUT_SIZE = 256 * 1024 * 1024


class CompressionError(ValueError):
    """Raised when input cannot be decompressed."""

    pass


class ZstdCodec:
    """Thread-safe zstd compressor/decompressor pair.

    Args:
        level: zstd compression level (3 is the library default).
        max_output_size: Upper bound on decompressed size in bytes.
    """

    def __init__(self, level: int = 3, max_output_size: int = DEFAULT_MAX_OUTPUT_SIZE) -> None:
        self.level = level
        self.max_output_size = max_output_size
        self._compressor: zstandard.ZstdCompressor | None = None
        self._decompressor: zstandard.ZstdDecompressor | None = None
        self._init_lock = threading.Lock()
        self._compress_lock = threading.Lock()
        self._decompress_lock = threading.Lock()

    def _get_compressor(self) -> zstandard.ZstdCompressor:
        if self._compressor is None:
            with self._init_lock:
                # Double-check after acquiring lock
                if self._compressor is None:
                    self._compressor = zstandard.ZstdCompressor(
                        level=self.level, write_content_size=True
                    )
        return self._compressor

    def _get_decompressor(self) -> zstandard.ZstdDecompressor:
        if self._decompressor is None:
            with self._init_lock:
                if self._decompressor is None:
                    self._decompressor = zstandard.ZstdDecompressor()
        return self._decompressor

    def compress(self, data: bytes) -> bytes:
        """Compress ``data`` into a single zstd frame."""
        compressor = self._get_compressor()
        with self._compress_lock:
            return compressor.compress(data)

    def decompress(self, data: bytes) -> bytes:
        """Decompress a zstd frame produced by ``compress``.

        Raises:
            CompressionError: If the data is not a valid frame or inflates
                past ``max_output_size``.
        """
        try:
            declared = zstandard.frame_content_size(data)
        except zstandard.ZstdError as e:
            raise CompressionError(f"reading frame header: {e}") from e
        # -1 means the frame does not declare its size
        if declared > self.max_output_size:
            raise CompressionError(
                f"declared size {declared} exceeds limit {self.max_output_size}"
            )

        decompressor = self._get_decompressor()
        try:
            with self._decompress_lock:
                result = decompressor.decompress(
                    data, max_output_size=self.max_output_size
                )
        except zstandard.ZstdError as e:
            raise CompressionError(f"decompressing data: {e}") from e

        if len(result) > self.max_output_size:
            raise CompressionError(
                f"decompressed size {len(result)} exceeds limit {self.max_output_size}"
            )
        return result
