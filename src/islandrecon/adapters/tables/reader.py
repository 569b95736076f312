"""Read flat JSON / JSON-lines documents from disk."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, cast

from islandrecon.domain.model import SchemaViolationError

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)

JSON_LINES_SUFFIXES = frozenset({".jsonl", ".ndjson"})


def read_documents(path: Path) -> list[dict[str, Any]]:
    """Return the objects stored in ``path``.

    ``.jsonl``/``.ndjson`` files hold one object per line; ``.json`` files hold
    either an array of objects or a single object.
    """

    if path.suffix.lower() in JSON_LINES_SUFFIXES:
        with path.open(encoding="utf-8") as handle:
            loaded: list[object] = [
                _parse(line, path, number)
                for number, line in enumerate(handle, start=1)
                if line.strip()
            ]
    else:
        with path.open(encoding="utf-8") as handle:
            try:
                document: object = json.load(handle)
            except json.JSONDecodeError as exc:
                raise SchemaViolationError(f"{path}: invalid JSON ({exc})") from exc
        loaded = cast(list[object], document) if isinstance(document, list) else [document]

    documents: list[dict[str, Any]] = []
    for index, item in enumerate(loaded):
        if not isinstance(item, Mapping):
            raise SchemaViolationError(f"{path}: entry {index} is not an object")
        documents.append(dict(cast(Mapping[str, Any], item)))
    log.debug("Read %s documents from %s", len(documents), path)
    return documents


def read_names(path: Path) -> list[str]:
    """Return checklist names from a JSON array or a text file with one name per line."""

    if path.suffix.lower() == ".json":
        with path.open(encoding="utf-8") as handle:
            document: object = json.load(handle)
        if not isinstance(document, list):
            raise SchemaViolationError(f"{path}: checklist must be a JSON array of names")
        names = cast(list[object], document)
        if not all(isinstance(name, str) for name in names):
            raise SchemaViolationError(f"{path}: checklist entries must be strings")
        return [cast(str, name) for name in names if cast(str, name).strip()]

    with path.open(encoding="utf-8") as handle:
        return [line.strip() for line in handle if line.strip() and not line.startswith("#")]


def _parse(line: str, path: Path, number: int) -> object:
    try:
        return json.loads(line)
    except json.JSONDecodeError as exc:
        raise SchemaViolationError(f"{path}:{number}: invalid JSON ({exc})") from exc
