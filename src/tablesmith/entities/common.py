"""
Column helpers shared by the portal entities.
"""

from typing import List

from ..schema.declaration import ColumnSpec


def serial_id() -> ColumnSpec:
    return ColumnSpec("id", "INT AUTO_INCREMENT PRIMARY KEY", nullable=False)


def short_id() -> ColumnSpec:
    """Eight-character public id (charities and their children)."""
    return ColumnSpec("id", "VARCHAR(8) PRIMARY KEY", nullable=False)


def is_active() -> ColumnSpec:
    return ColumnSpec("isActive", "BOOLEAN", nullable=False, default=True)


def timestamps() -> List[ColumnSpec]:
    """createdAt / updatedAt, maintained by the database."""
    return [
        ColumnSpec("createdAt", "TIMESTAMP", nullable=False, default="CURRENT_TIMESTAMP"),
        ColumnSpec(
            "updatedAt",
            "TIMESTAMP",
            nullable=False,
            default="CURRENT_TIMESTAMP",
            extra="ON UPDATE CURRENT_TIMESTAMP",
        ),
    ]
