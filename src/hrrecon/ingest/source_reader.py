"""Reads export files as text."""

from __future__ import annotations

from pathlib import Path

from hrrecon.core.logging_config import get_logger

logger = get_logger(__name__)

FALLBACK_ENCODING = "cp1252"


def read_source_text(path: str | Path, encoding: str = "utf-8") -> str:
    """Read a source file, retrying once with the legacy Windows code page.

    Raises:
        OSError: file cannot be read.
    """
    raw = Path(path).read_bytes()
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError:
        logger.warning("source_decode_fallback", file=str(path), encoding=encoding, fallback=FALLBACK_ENCODING)
        return raw.decode(FALLBACK_ENCODING, errors="replace")
