# oracle_parquet/presentation/lambda_entry.py
from __future__ import annotations
import asyncio
from typing import Any

from ..application.handler import CurrentMode, Handler
from ..logging_setup import setup_logging
from ..settings import load_settings


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """AWS Lambda entry for S3 object-created events. Errors propagate so the invocation fails."""
    settings = load_settings()
    setup_logging(settings.log)
    outcome = asyncio.run(Handler(settings, CurrentMode(event)).run())
    if outcome is None:
        return {"message": "ignored"}
    return {
        "message": f"{outcome.key} processed",
        "artifacts": [a.path for a in outcome.artifacts],
    }
