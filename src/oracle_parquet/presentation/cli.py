import asyncio, json
from datetime import datetime, timezone
from typing import Optional

import typer
from pydantic import ValidationError

from ..adapters.proto_decoder import ProtobufDecoder
from ..adapters.s3_store import build_store
from ..application.converter import FileConverter
from ..application.handler import CurrentMode, Handler, HistoryMode
from ..application.upload import UploadLifecycle
from ..application.use_cases import convert_and_publish
from ..domain.errors import OracleParquetError, error_kind
from ..domain.models import SourceFileDescriptor
from ..logging_setup import console, setup_logging
from ..settings import Settings, load_settings

app = typer.Typer(help="Oracles Parquet Parser")

ConfigOpt = typer.Option(None, "-c", "--config", help="Optional TOML settings file; LAMBDA_PARQUET_* env vars override it")


def _utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)

def _settings(config: Optional[str]) -> Settings:
    try:
        s = load_settings(config)
    except OracleParquetError as e:
        console.print(f"[red]config error[/]: {e}")
        raise typer.Exit(2)
    setup_logging(s.log)
    return s


@app.command()
def history(
    after: datetime = typer.Option(..., help="Window start (inclusive, UTC)"),
    before: datetime = typer.Option(..., help="Window end (exclusive, UTC)"),
    file_type: Optional[str] = typer.Option(None, help="Override the configured file type"),
    config: Optional[str] = ConfigOpt,
):
    """Backfill every source file in [after, before)."""
    s = _settings(config)
    try:
        if file_type:
            s = Settings.model_validate({**s.model_dump(), "file_type": file_type})
        summary = asyncio.run(Handler(s, HistoryMode(_utc(after), _utc(before))).run())
    except (ValidationError, ValueError) as e:
        console.print(f"[red]bad arguments[/]: {error_kind(e)}: {e}")
        raise typer.Exit(2)
    except OracleParquetError as e:
        console.print(f"[red]failed[/]: {e.kind}: {e}")
        raise typer.Exit(1)
    console.print(f"[bold]summary[/]: {summary.as_dict()}")
    for o in summary.failed:
        console.print(f"[red]failed[/] {o.key}: {o.error}")
    raise typer.Exit(summary.exit_code)


@app.command()
def current(
    event: str = typer.Option(..., help="Path to an S3 event JSON document"),
    config: Optional[str] = ConfigOpt,
):
    """Convert the single file named by an S3 object-created event."""
    s = _settings(config)
    with open(event) as f:
        payload = json.load(f)
    try:
        outcome = asyncio.run(Handler(s, CurrentMode(payload)).run())
    except OracleParquetError as e:
        console.print(f"[red]failed[/]: {e}")
        raise typer.Exit(1)
    if outcome is None:
        console.print("nothing to do")
        return
    for a in outcome.artifacts:
        console.print(f"[green]{a.kind}[/] {a.path}")


@app.command("convert-file")
def convert_file(
    key: str,
    upload: bool = typer.Option(True, help="Upload and delete the local outputs"),
    config: Optional[str] = ConfigOpt,
):
    """Convert one key of the configured ingest store."""
    s = _settings(config)

    async def main():
        store = build_store(s.ingest.root, region=s.ingest.region, endpoint_url=s.ingest.endpoint)
        uploader = None
        if upload and s.output is not None:
            uploader = UploadLifecycle(build_store(s.output.root, region=s.output.region, endpoint_url=s.output.endpoint))
        converter = FileConverter(store, ProtobufDecoder(), s.output_path)
        return await convert_and_publish(SourceFileDescriptor.from_key(key), converter=converter, uploader=uploader)

    try:
        outcome = asyncio.run(main())
    except OracleParquetError as e:
        console.print(f"[red]failed[/]: {e}")
        raise typer.Exit(1)
    for a in outcome.artifacts:
        console.print(f"[green]{a.kind}[/] {a.path}")


if __name__ == "__main__":
    app()
