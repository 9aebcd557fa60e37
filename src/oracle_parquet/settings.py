"""Process settings: defaults, then an optional TOML file, then LAMBDA_PARQUET_* env vars."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .domain.errors import ConfigError
from .domain.value_types import FILE_TYPES

ENV_PREFIX = "LAMBDA_PARQUET_"


class StoreSettings(BaseModel):
    """Where a bucket lives. `root` is `s3://bucket[/prefix]` or a local directory."""

    model_config = ConfigDict(frozen=True)

    root: str
    region: str | None = "us-west-2"
    endpoint: str | None = None


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    log: str = "INFO"
    output_path: str = "/tmp"
    workers: int = Field(default=5, ge=1, le=256)
    file_type: str = "iot_poc"
    ingest: StoreSettings
    output: StoreSettings | None = None

    @field_validator("file_type")
    @classmethod
    def _known_file_type(cls, value: str) -> str:
        if value not in FILE_TYPES:
            raise ValueError(f"file_type must be one of {FILE_TYPES}, got {value!r}")
        return value

    @field_validator("log")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()


def _set_path(target: dict[str, Any], path: list[str], value: str) -> None:
    node = target
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = value


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """LAMBDA_PARQUET_WORKERS=8, LAMBDA_PARQUET_INGEST__ROOT=s3://bucket ..."""
    out: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [p.lower() for p in name[len(ENV_PREFIX):].split("__") if p]
        if path:
            _set_path(out, path, value)
    return out


def _merge(base: dict[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for k, v in extra.items():
        if isinstance(v, Mapping) and isinstance(merged.get(k), dict):
            merged[k] = _merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def load_settings(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    data: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if p.is_file():
            try:
                with p.open("rb") as f:
                    data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"{p}: {e}") from e
    data = _merge(data, _env_overrides(os.environ if environ is None else environ))
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
