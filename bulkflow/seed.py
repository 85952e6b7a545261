from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class BackendSeed(BaseModel):
    """Raw backend records preloaded into the in-memory backend."""

    orders: List[Dict[str, Any]] = Field(default_factory=list)
    quotations: List[Dict[str, Any]] = Field(default_factory=list)


def load_backend_seed(path: str) -> BackendSeed:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return BackendSeed(**data)
