"""
Statement extraction from capture files.

A capture file is a JSON array of log envelopes, each holding a free-text
``jsonPayload.message``. Extraction is a two-phase pure pipeline: the whole
file is decoded and validated first, then a new ``LogEntry`` is produced per
envelope with the SQL isolated from its message.

Usage:
    from sql_log_replay.extractor import extract

    entries = extract("captures/staging.json")
    statements = [entry.statement for entry in entries]
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, List, Union

from pydantic import TypeAdapter, ValidationError

from sql_log_replay.domain.models import CaptureEnvelope, LogEntry
from sql_log_replay.errors import CaptureDecodeError, CaptureIOError
from sql_log_replay.utils.logging import get_logger

log = get_logger(__name__)

# First whole-word keyword through the end of the message, newlines included.
STATEMENT_PATTERN = re.compile(
    r"\b(SELECT|INSERT|UPDATE|DELETE|WITH RECURSIVE)\b[\s\S]*",
    re.IGNORECASE | re.ASCII,
)

_CAPTURE_ADAPTER: TypeAdapter[List[CaptureEnvelope]] = TypeAdapter(List[CaptureEnvelope])

# Surrogate pairs are already combined by the JSON decoder; anything left is unpaired.
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")
_REPLACEMENT_CHAR = "\N{REPLACEMENT CHARACTER}"


def extract_statement(message: str) -> str:
    """
    Return the SQL portion of a log message, or ``""`` when there is none.
    """
    match = STATEMENT_PATTERN.search(message)
    return match.group(0) if match else ""


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return _LONE_SURROGATE.sub(_REPLACEMENT_CHAR, value)
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    if isinstance(value, dict):
        return {_scrub(key): _scrub(item) for key, item in value.items()}
    return value


def parse_capture(data: Union[bytes, str]) -> List[LogEntry]:
    """
    Decode capture-file content into log entries, preserving input order.

    Invalid UTF-8 and unpaired ``\\uXXXX`` surrogate escapes are replaced
    with U+FFFD instead of rejecting the file; exported logs routinely carry
    messages truncated mid-character.

    Raises
    ------
    CaptureDecodeError
        If the content is not valid JSON or not an array of envelopes with a
        string ``jsonPayload.message``. No partial result is returned.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    try:
        document = json.loads(data)
    except ValueError as exc:
        raise CaptureDecodeError(f"capture is not valid JSON: {exc}") from exc
    try:
        envelopes = _CAPTURE_ADAPTER.validate_python(_scrub(document))
    except ValidationError as exc:
        raise CaptureDecodeError(
            f"capture is not an array of log envelopes: {exc.error_count()} error(s), "
            f"first: {exc.errors()[0]['msg']}"
        ) from exc

    return [
        LogEntry(
            raw_message=envelope.json_payload.message,
            statement=extract_statement(envelope.json_payload.message),
        )
        for envelope in envelopes
    ]


def extract(file_path: Union[str, Path]) -> List[LogEntry]:
    """
    Read a capture file and extract one entry per array element.

    Parameters
    ----------
    file_path : str | Path
        Path to the JSON capture file.

    Returns
    -------
    List[LogEntry]
        Entries in file order; ``statement`` is empty where no SQL was found.

    Raises
    ------
    CaptureIOError
        If the file is missing or unreadable.
    CaptureDecodeError
        If the file content is malformed.
    """
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise CaptureIOError(f"cannot read capture file {path}: {exc.strerror or exc}") from exc

    entries = parse_capture(data)
    missing = sum(1 for entry in entries if not entry.has_statement)
    log.info(
        "Capture extracted",
        extra={"capture": str(path), "entries": len(entries), "without_statement": missing},
    )
    return entries


__all__ = ["STATEMENT_PATTERN", "extract", "extract_statement", "parse_capture"]
