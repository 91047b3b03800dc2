"""
War-room sessions: scheduled, live and archived broadcasts.
"""

from ..schema.declaration import ColumnSpec, IndexSpec, SchemaDeclaration
from .common import is_active, serial_id, timestamps

# Values of warrooms.status
UPCOMING = 0
LIVE = 1
ARCHIVED = 2
PODCAST = 3


def warrooms() -> SchemaDeclaration:
    return SchemaDeclaration(
        table_name="warrooms",
        columns=[
            serial_id(),
            ColumnSpec("title", "VARCHAR(500)", nullable=False),
            ColumnSpec("description", "TEXT"),
            ColumnSpec("date", "TIMESTAMP", nullable=False),
            ColumnSpec("location", "VARCHAR(500)", nullable=False),
            ColumnSpec("img", "VARCHAR(1000)"),
            ColumnSpec("videoLink", "VARCHAR(1000)"),
            ColumnSpec(
                "status",
                "INT",
                nullable=False,
                default=UPCOMING,
                extra="COMMENT '0=upcoming, 1=live, 2=archived, 3=podcast'",
            ),
            is_active(),
            *timestamps(),
        ],
        indexes=[
            IndexSpec("idx_status", ["status"]),
            IndexSpec("idx_date", ["date"]),
            IndexSpec("idx_isActive", ["isActive"]),
        ],
    )
