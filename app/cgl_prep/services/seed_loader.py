"""Loader for the hand-written fallback datasets stored under data/seeds.

The seeds live at the repository root, next to ``app/``, so the package must
be run from a checkout or an editable install (``pip install -e .``).
"""
from __future__ import annotations

import copy
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from flask import current_app

SEED_DIR = Path(__file__).resolve().parents[3] / "data" / "seeds"


@lru_cache(maxsize=None)
def _read_seed(filename: str) -> tuple:
    path = SEED_DIR / filename
    if not path.exists():
        current_app.logger.warning("Seed file %s not found; fallback content will be empty", path)
        return ()
    with path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            current_app.logger.warning("Seed file %s is not valid JSON: %s", path, exc)
            return ()
    if not isinstance(payload, list):
        current_app.logger.warning("Seed file %s does not hold a JSON array", path)
        return ()
    return tuple(item for item in payload if isinstance(item, dict))


def load_seed(filename: str) -> List[Dict[str, Any]]:
    """Return a fresh copy of a seed list (e.g. filename='vocabulary.json')."""
    return copy.deepcopy(list(_read_seed(filename)))
