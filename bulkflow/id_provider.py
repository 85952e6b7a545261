from __future__ import annotations

from typing import Protocol
from uuid import uuid4


class IdProvider(Protocol):
    def new_id(self) -> str: ...


class ObjectIdProvider:
    """24 hex characters, the shape of the backend's ``_id`` values."""

    def new_id(self) -> str:
        return uuid4().hex[:24]
