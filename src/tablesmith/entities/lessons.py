"""
Video lessons grouped into playlists.
"""

from ..schema.declaration import (
    ColumnSpec,
    ForeignKeyReference,
    IndexKind,
    IndexSpec,
    SchemaDeclaration,
)
from .common import is_active, serial_id, timestamps


def lesson_playlists() -> SchemaDeclaration:
    return SchemaDeclaration(
        table_name="lesson_playlists",
        columns=[
            serial_id(),
            ColumnSpec("playlist_id", "VARCHAR(100)", nullable=False),
            ColumnSpec("title", "VARCHAR(500)", nullable=False),
            ColumnSpec("description", "TEXT"),
            ColumnSpec("thumbnail", "VARCHAR(1000)"),
            ColumnSpec("authors", "JSON"),
            ColumnSpec("size", "VARCHAR(50)"),
            ColumnSpec("display_order", "INT", nullable=False, default=0),
            is_active(),
            *timestamps(),
        ],
        indexes=[
            IndexSpec("playlist_id", ["playlist_id"], IndexKind.UNIQUE),
            IndexSpec("idx_display_order", ["display_order"]),
        ],
    )


def lessons() -> SchemaDeclaration:
    return SchemaDeclaration(
        table_name="lessons",
        columns=[
            serial_id(),
            ColumnSpec("img", "VARCHAR(1000)", nullable=False),
            ColumnSpec("title", "VARCHAR(500)", nullable=False),
            ColumnSpec("description", "TEXT"),
            ColumnSpec("videoLink", "VARCHAR(1000)", nullable=False),
            ColumnSpec("authors", "JSON", nullable=False),
            ColumnSpec("size", "VARCHAR(50)", nullable=False),
            ColumnSpec("playlist_id", "INT", nullable=False),
            ColumnSpec("recommend", "BOOLEAN", nullable=False, default=False),
            is_active(),
            *timestamps(),
        ],
        indexes=[
            IndexSpec("idx_playlist", ["playlist_id"]),
            IndexSpec("idx_recommend", ["recommend"]),
            IndexSpec("idx_isActive", ["isActive"]),
            IndexSpec(
                "fk_lesson_playlist",
                ["playlist_id"],
                IndexKind.FOREIGN_KEY,
                references=ForeignKeyReference("lesson_playlists", "id"),
                on_delete="CASCADE",
                on_update="CASCADE",
            ),
        ],
    )
