"""Utility functions for prompt-commons."""

import json
import os
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger

DATA_DIR_NAME = ".prompt-commons"

# Matches ```json ... ``` or bare ``` ... ``` fences around a model reply
FENCED_BLOCK_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_to_stdout: bool = False,
    log_dir: Optional[Path] = None,
) -> None:  # pragma: no cover
    """Configure loguru sinks for the current process.

    Args:
        log_level: Minimum level for every sink
        log_to_file: Write a rotating log file under the data directory
        log_to_stdout: Write to stderr, used by the API server in containers
        log_dir: Override for the log file directory
    """
    logger.remove()

    if log_to_file:
        directory = log_dir or Path(
            os.getenv("PROMPT_COMMONS_CONFIG_DIR", Path.home() / DATA_DIR_NAME)
        )
        directory.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(directory / "prompt-commons.log"),
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, backtrace=True, diagnose=False)

    logger.info(f"Logging initialized at level {log_level}")


def ensure_timezone_aware(value: datetime) -> datetime:
    """Return a UTC-aware datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_json_reply(reply: Optional[str]) -> Optional[Any]:
    """Decode a JSON object from a generative model reply.

    Models answer either with raw JSON or with JSON wrapped in a Markdown
    code fence, sometimes with prose around it. Returns None when nothing
    decodable is found; never raises.
    """
    if not reply or not reply.strip():
        return None

    candidates = [match.group(1) for match in FENCED_BLOCK_PATTERN.finditer(reply)]
    candidates.append(reply.strip())

    # Prose around a bare object: take the outermost braces
    start, end = reply.find("{"), reply.rfind("}")
    if 0 <= start < end:
        candidates.append(reply[start : end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
    return None

