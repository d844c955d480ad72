"""Read entity JSON from a file, a TOML file, or stdin."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

import toml

from fatcat_cli.domain.errors import FatcatCliError

logger = logging.getLogger(__name__)


def read_entity_file(input_path: Optional[str], stdin: Optional[TextIO] = None) -> str:
    """Return a single-line JSON entity.

    ``None`` or ``"-"`` reads one line from stdin. ``.toml`` files are parsed
    and re-serialized as JSON; any other file contributes its first line.
    """
    if input_path is None or input_path == "-":
        stream = stdin or sys.stdin
        return stream.readline()

    path = Path(input_path)
    try:
        if path.suffix == ".toml":
            logger.info(f"reading {path} as TOML")
            with open(path, "r", encoding="utf-8") as f:
                value = toml.load(f)
            return json.dumps(value, ensure_ascii=False)
        with open(path, "r", encoding="utf-8") as f:
            return f.readline()
    except OSError as exc:
        raise FatcatCliError(f"reading entity from {path}: {exc}") from exc
    except toml.TomlDecodeError as exc:
        raise FatcatCliError(f"parsing TOML file {path}: {exc}") from exc
