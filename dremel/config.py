"""Configuration defaults and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Output formats, log level, and display settings are
plain module-level values, not buried in the CLI or the formatters.

HOW: python-dotenv loads the .env file on import. Each default can be
overridden through an environment variable of the same name.

RULES:
- DREMEL_LOG_LEVEL: logging level name for the CLI (default WARNING)
- DREMEL_DEFAULT_FORMATS: comma-separated formatter keys, empty = all
- DREMEL_NULL_DISPLAY: how null values are shown in text tables
- DREMEL_STRICT: reject record keys not declared in the schema
- DREMEL_JSON_INDENT: indentation of JSON output (0 = compact)
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

# Load .env from the project root (where the tool is run from)
load_dotenv()

DREMEL_LOG_LEVEL = os.getenv("DREMEL_LOG_LEVEL", "WARNING").upper()
DREMEL_DEFAULT_FORMATS = os.getenv("DREMEL_DEFAULT_FORMATS", "")
DREMEL_NULL_DISPLAY = os.getenv("DREMEL_NULL_DISPLAY", "NULL")
DREMEL_STRICT = os.getenv("DREMEL_STRICT", "false").lower() == "true"
DREMEL_JSON_INDENT = int(os.getenv("DREMEL_JSON_INDENT", "2"))


def log_level() -> int:
    """Map DREMEL_LOG_LEVEL to a logging level, falling back to WARNING."""
    level = logging.getLevelName(DREMEL_LOG_LEVEL)
    return level if isinstance(level, int) else logging.WARNING


def default_formats() -> list[str] | None:
    """Formatter keys from DREMEL_DEFAULT_FORMATS, or None for all formatters."""
    keys = [k.strip() for k in DREMEL_DEFAULT_FORMATS.split(",") if k.strip()]
    return keys or None


def json_indent() -> int | None:
    """Indent argument for json.dumps (None when compact output is configured)."""
    return DREMEL_JSON_INDENT if DREMEL_JSON_INDENT > 0 else None
