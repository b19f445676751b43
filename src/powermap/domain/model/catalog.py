"""Shared records that entities point at: tags, documents, lists and articles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import utcnow
from .enums import ListAccess

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class Tag:
    id: int | None = None
    name: str
    description: str | None = None
    restricted: bool = False

    def is_restricted(self) -> bool:
        return self.restricted


@dataclass(eq=False, kw_only=True)
class Document:
    id: int | None = None
    url: str
    name: str | None = None


@dataclass(eq=False, kw_only=True)
class EntityList:
    id: int | None = None
    name: str
    description: str | None = None
    access: ListAccess = ListAccess.OPEN
    creator_user_id: int | None = None
    is_deleted: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class Article:
    id: int | None = None
    title: str
    url: str
