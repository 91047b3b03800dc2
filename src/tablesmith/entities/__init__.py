"""
Table declarations of the disaster-response portal.

``ENTITIES`` is in reconciliation order: every table comes after the tables
its foreign keys point to.
"""

from typing import List

from ..schema.declaration import SchemaDeclaration
from .charities import charities, charity_items, charity_slides
from .lessons import lesson_playlists, lessons
from .users import users
from .warrooms import warrooms

ENTITIES = [
    users,
    charities,
    charity_slides,
    charity_items,
    lesson_playlists,
    lessons,
    warrooms,
]


def declarations() -> List[SchemaDeclaration]:
    """All portal declarations, parents first."""
    return [entity() for entity in ENTITIES]


__all__ = [
    "ENTITIES",
    "declarations",
    "users",
    "charities",
    "charity_slides",
    "charity_items",
    "lesson_playlists",
    "lessons",
    "warrooms",
]
