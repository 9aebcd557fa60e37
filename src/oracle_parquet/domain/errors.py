# oracle_parquet/domain/errors.py
from __future__ import annotations


class OracleParquetError(RuntimeError):
    """Base for every error this package raises on purpose."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class DecodeError(OracleParquetError):
    """Malformed source bytes (framing or protobuf)."""


class MissingRequiredField(OracleParquetError):
    """A decoded record lacks a sub-message the output schema requires."""


class LocationParseError(OracleParquetError):
    """A location string could not be parsed as an integer cell id."""


class StoreError(OracleParquetError):
    """Listing, fetching or uploading against the object store failed."""


class SchemaWriteError(OracleParquetError):
    """Column values do not fit the declared output schema."""


class InvalidEvent(OracleParquetError):
    """The trigger event does not carry a usable S3 record."""


class UnknownFileType(OracleParquetError):
    """A file key whose prefix is not a known file type."""


class ConfigError(OracleParquetError):
    """Settings could not be loaded or validated."""


class FileConversionError(OracleParquetError):
    """Wraps a per-file failure so the message names the key and the error kind."""

    def __init__(self, key: str, cause: BaseException) -> None:
        self.key = key
        self.cause = cause
        super().__init__(f"{key}: {error_kind(cause)}: {cause}")

    @property
    def kind(self) -> str:
        return error_kind(self.cause)


def error_kind(exc: BaseException) -> str:
    if isinstance(exc, OracleParquetError):
        return exc.kind
    return type(exc).__name__
