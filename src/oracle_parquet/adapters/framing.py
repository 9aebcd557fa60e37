from __future__ import annotations
import gzip
import struct
import zlib
from typing import Iterable, Iterator

from ..domain.errors import DecodeError

_GZIP_MAGIC = b"\x1f\x8b"
_LEN = struct.Struct(">I")


def decode_frames(data: bytes) -> Iterator[bytes]:
    """Split a (possibly gzipped) object body into its u32-BE length-delimited payloads."""
    if data[:2] == _GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise DecodeError(f"bad gzip body: {e}") from e
    pos, end = 0, len(data)
    while pos < end:
        if end - pos < _LEN.size:
            raise DecodeError(f"truncated length prefix at byte {pos}")
        (n,) = _LEN.unpack_from(data, pos)
        pos += _LEN.size
        if end - pos < n:
            raise DecodeError(f"truncated frame at byte {pos}: want {n}, have {end - pos}")
        yield data[pos:pos + n]
        pos += n


def encode_frames(payloads: Iterable[bytes], *, compress: bool = True) -> bytes:
    body = b"".join(_LEN.pack(len(p)) + p for p in payloads)
    return gzip.compress(body) if compress else body
