# src/registry/local.py - v1
"""Component definitions read from a local JSON file.

A definition has the registry shape plus its files::

    {"name": "badge", "dependencies": ["button"],
     "files": [{"path": "components/ui/badge.tsx", "content": "..."}]}

Definitions go through the same validation as registry payloads.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from compforge.core.errors import InvalidComponentError
from compforge.core.models import Component, ComponentSummary
from compforge.registry.validation import validate_files

logger = logging.getLogger(__name__)


def is_local_definition(arg: str) -> bool:
    """True when a CLI argument names a definition file, not a component."""
    return arg.endswith(".json") or Path(arg).expanduser().is_file()


def load_local_definition(path: Path | str) -> Component:
    """Read and validate a component definition file.

    Raises:
        InvalidComponentError: The file cannot be read, is not JSON, or does
            not describe a valid component with at least one file.
    """
    path = Path(path).expanduser()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise InvalidComponentError(str(path), f"cannot read definition: {e}") from e
    except ValueError as e:
        raise InvalidComponentError(str(path), f"not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidComponentError(str(path), "definition must be a JSON object")
    if not data.get("name") or "files" not in data:
        raise InvalidComponentError(str(path), "definition must have name and files")

    name = str(data["name"])
    meta = {k: v for k, v in data.items() if k != "files"}
    try:
        summary = ComponentSummary.model_validate(meta)
    except ValidationError as e:
        raise InvalidComponentError(name, str(e.errors()[0].get("msg", "invalid"))) from e
    files = validate_files(name, data["files"])

    logger.info("Loaded local definition '%s' from %s (%d file(s))", name, path, len(files))
    return Component(**summary.model_dump(), files=files)
