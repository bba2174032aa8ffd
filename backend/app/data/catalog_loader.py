from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from app.utils.config import get_settings

_REPO_ROOT = Path(__file__).resolve().parents[3]


def catalog_path() -> Path:
    path = Path(get_settings().catalog_data_path)
    if not path.is_absolute():
        path = _REPO_ROOT / path
    return path


def load_catalog(path: Path | None = None) -> Dict[str, Any]:
    """Read the seed catalog; a missing file yields an empty catalog."""

    path = path or catalog_path()
    if not path.exists():
        return {}

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
