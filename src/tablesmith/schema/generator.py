"""
DDL generation for tablesmith.

Turns a change-set into an ordered list of statements. Indexes and foreign
keys are always dropped (failure tolerated) before being added, so the
generator never needs to know whether a same-named object already exists.
"""

from dataclasses import dataclass
from typing import List

from .declaration import SchemaDeclaration
from .dialects import Dialect
from .differ import ChangeSet


@dataclass(frozen=True)
class Statement:
    """A single DDL statement to run."""

    sql: str
    ignore_failure: bool = False
    description: str = ""

    def __str__(self) -> str:
        return self.sql


class DDLGenerator:
    """Render change-sets and declarations as dialect SQL."""

    def __init__(self, dialect: Dialect):
        self.dialect = dialect

    def create_table(self, declaration: SchemaDeclaration) -> Statement:
        return Statement(
            sql=self.dialect.create_table(declaration),
            description=f"create table {declaration.table_name}",
        )

    def generate(self, change_set: ChangeSet) -> List[Statement]:
        """Ordered statements: add columns, modify columns, then indexes."""
        table = change_set.table_name
        statements: List[Statement] = []

        for column in change_set.columns_to_add:
            # Primary keys only come from CREATE TABLE
            if column.is_primary_key:
                continue
            statements.append(
                Statement(
                    sql=self.dialect.add_column(table, column),
                    description=f"add column {column.name}",
                )
            )

        for column in change_set.columns_to_modify:
            if column.name == change_set.primary_key or column.name == "id" or column.is_primary_key:
                continue
            statements.append(
                Statement(
                    sql=self.dialect.modify_column(table, column),
                    description=f"modify column {column.name}",
                )
            )

        for index in change_set.indexes_to_add:
            if index.name == "PRIMARY":
                continue

            if index.is_foreign_key:
                # The constraint must go before the index that backs it
                statements.append(
                    Statement(
                        sql=self.dialect.drop_foreign_key(table, index.name),
                        ignore_failure=True,
                        description=f"drop foreign key {index.name}",
                    )
                )
                statements.append(
                    Statement(
                        sql=self.dialect.drop_index(table, index.name),
                        ignore_failure=True,
                        description=f"drop index {index.name}",
                    )
                )
                statements.append(
                    Statement(
                        sql=self.dialect.add_foreign_key(table, index),
                        description=f"add foreign key {index.name} -> {index.references}",
                    )
                )
            else:
                statements.append(
                    Statement(
                        sql=self.dialect.drop_index(table, index.name),
                        ignore_failure=True,
                        description=f"drop index {index.name}",
                    )
                )
                statements.append(
                    Statement(
                        sql=self.dialect.add_index(table, index),
                        description=f"add {'unique ' if index.is_unique else ''}index {index.name}",
                    )
                )

        return statements
