"""
Portal users.
"""

from ..schema.declaration import ColumnSpec, IndexKind, IndexSpec, SchemaDeclaration
from .common import is_active, serial_id, timestamps


def users() -> SchemaDeclaration:
    return SchemaDeclaration(
        table_name="users",
        columns=[
            serial_id(),
            ColumnSpec("username", "VARCHAR(255)", nullable=False),
            ColumnSpec("email", "VARCHAR(255)", nullable=False),
            ColumnSpec("password", "VARCHAR(255)", nullable=False),
            ColumnSpec("role", "ENUM('admin', 'member')", nullable=False, default="member"),
            ColumnSpec("firstName", "VARCHAR(255)", nullable=False),
            ColumnSpec("lastName", "VARCHAR(255)", nullable=False),
            ColumnSpec("avatar", "VARCHAR(500)", nullable=True, default=None),
            is_active(),
            *timestamps(),
        ],
        indexes=[
            IndexSpec("username", ["username"], IndexKind.UNIQUE),
            IndexSpec("email", ["email"], IndexKind.UNIQUE),
            IndexSpec("idx_role", ["role"]),
        ],
    )
