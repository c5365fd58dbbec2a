"""Loads `import_map.json` files.

Format: `{"imports": {"<specifier>": "<URL or version>"}}`.
"""

from __future__ import annotations

import json
from pathlib import Path

from netimport.core.domain.models import ImportMap


def load_import_map(path: Path) -> ImportMap:
    raw = path.read_text(encoding="utf-8")
    data = json.loads(raw)
    return ImportMap.model_validate(data)
