"""
Charity campaigns, their slideshow images and the items they collect.

Charity ids are eight-character strings; the child tables reference them
with cascading foreign keys.
"""

from ..schema.declaration import (
    ColumnSpec,
    ForeignKeyReference,
    IndexKind,
    IndexSpec,
    SchemaDeclaration,
)
from .common import is_active, short_id, timestamps


def _charity_fk(name: str) -> IndexSpec:
    return IndexSpec(
        name,
        ["charity_id"],
        IndexKind.FOREIGN_KEY,
        references=ForeignKeyReference("charities", "id"),
        on_delete="CASCADE",
        on_update="CASCADE",
    )


def charities() -> SchemaDeclaration:
    return SchemaDeclaration(
        table_name="charities",
        columns=[
            short_id(),
            ColumnSpec("title", "VARCHAR(500)", nullable=False),
            ColumnSpec("description", "TEXT"),
            ColumnSpec("expected_fund", "DECIMAL(15, 2)", nullable=False, default=0),
            ColumnSpec("current_fund", "DECIMAL(15, 2)", nullable=False, default=0),
            ColumnSpec("img", "VARCHAR(1000)", nullable=False),
            is_active(),
            ColumnSpec(
                "status",
                "ENUM('active', 'completed', 'paused')",
                nullable=False,
                default="active",
            ),
            ColumnSpec("startDate", "TIMESTAMP", nullable=False, default="CURRENT_TIMESTAMP"),
            ColumnSpec("endDate", "TIMESTAMP", nullable=True, default=None),
            *timestamps(),
        ],
        indexes=[
            IndexSpec("idx_status", ["status"]),
            IndexSpec("idx_isActive", ["isActive"]),
        ],
    )


def charity_slides() -> SchemaDeclaration:
    return SchemaDeclaration(
        table_name="charity_slides",
        columns=[
            short_id(),
            ColumnSpec("charity_id", "VARCHAR(8)", nullable=False),
            ColumnSpec("img", "VARCHAR(1000)", nullable=False),
            ColumnSpec("description", "TEXT"),
            ColumnSpec("display_order", "INT", nullable=False, default=0),
            is_active(),
            *timestamps(),
        ],
        indexes=[
            IndexSpec("idx_charity_id", ["charity_id"]),
            IndexSpec("idx_display_order", ["display_order"]),
            _charity_fk("fk_charity_slide_charity"),
        ],
    )


def charity_items() -> SchemaDeclaration:
    return SchemaDeclaration(
        table_name="charity_items",
        columns=[
            short_id(),
            ColumnSpec("charity_id", "VARCHAR(8)", nullable=False),
            ColumnSpec("name", "VARCHAR(500)", nullable=False),
            ColumnSpec("needed_quantity", "INT", nullable=False, default=0),
            ColumnSpec("current_quantity", "INT", nullable=False, default=0),
            ColumnSpec(
                "status",
                "ENUM('pending', 'in_progress', 'completed')",
                nullable=False,
                default="pending",
            ),
            is_active(),
            *timestamps(),
        ],
        indexes=[
            IndexSpec("idx_charity_id", ["charity_id"]),
            IndexSpec("idx_status", ["status"]),
            _charity_fk("fk_charity_item_charity"),
        ],
    )
