"""Column descriptors, filter clauses and the active filter collection."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

# A fetched list item: field name -> value, shape depends on the column type
Record = Dict[str, Any]


class ColumnType(str, Enum):
    """Semantic type tag of a list column.

    Values are the remote ``TypeAsString`` names. Every remote type without
    dedicated handling collapses to ``TEXT``.
    """

    DATETIME = "DateTime"
    USER = "User"
    URL = "URL"
    COMPUTED = "Computed"
    TAXONOMY_MULTI = "TaxonomyFieldTypeMulti"
    TAXONOMY = "TaxonomyFieldType"
    NUMBER = "Number"
    CHOICE = "Choice"
    TEXT = "Text"

    @classmethod
    def parse(cls, type_name: Optional[str]) -> "ColumnType":
        """
        Map a remote type string to its tag.

        Args:
            type_name: Remote type name (e.g. 'DateTime', 'Note', 'Boolean')

        Returns:
            The matching ColumnType, or TEXT for unknown/missing names
        """
        if isinstance(type_name, ColumnType):
            return type_name
        try:
            return cls(type_name)
        except ValueError:
            return cls.TEXT

    @property
    def is_client_only(self) -> bool:
        """True when the remote query language cannot filter this type."""
        return self is ColumnType.TAXONOMY_MULTI


@dataclass(frozen=True)
class ColumnDescriptor:
    """A displayed column of a list view."""

    internal_name: str
    display_name: str
    column_type: ColumnType
    min_width: int = 100
    max_width: int = 200
    type_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "internal_name": self.internal_name,
            "display_name": self.display_name,
            "column_type": self.column_type.value,
            "type_name": self.type_name or self.column_type.value,
            "min_width": self.min_width,
            "max_width": self.max_width,
        }


@dataclass(frozen=True)
class FilterClause:
    """
    Selected values for one column.

    The type tag is copied from the column descriptor when the clause is
    created so the clause can be routed without looking the column up again.
    Values combine with OR.
    """

    column: str
    column_type: ColumnType
    values: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "column_type", ColumnType.parse(self.column_type))
        object.__setattr__(self, "values", tuple(str(v) for v in self.values))

    @classmethod
    def for_column(
        cls, column: ColumnDescriptor, values: Iterable[Any]
    ) -> "FilterClause":
        return cls(column.internal_name, column.column_type, tuple(values))

    @property
    def is_empty(self) -> bool:
        return len(self.values) == 0

    @property
    def is_client_only(self) -> bool:
        return self.column_type.is_client_only


@dataclass(frozen=True)
class ActiveFilters:
    """
    Active filter clauses, partitioned by where they can be evaluated.

    ``server`` holds clauses that translate into the remote filter expression,
    ``client`` holds taxonomy clauses applied after the fetch. A column is
    present in at most one partition and never with an empty value set.
    """

    server: Tuple[FilterClause, ...] = field(default_factory=tuple)
    client: Tuple[FilterClause, ...] = field(default_factory=tuple)

    def apply(self, clause: FilterClause) -> "ActiveFilters":
        """
        Upsert or remove the clause for its column.

        An empty clause removes any existing clause for the column. Applying
        the same clause twice yields the same collection.

        Args:
            clause: Clause to apply

        Returns:
            New ActiveFilters instance
        """
        server = tuple(c for c in self.server if c.column != clause.column)
        client = tuple(c for c in self.client if c.column != clause.column)
        if not clause.is_empty:
            if clause.is_client_only:
                client = client + (clause,)
            else:
                server = server + (clause,)
        return replace(self, server=server, client=client)

    def get(self, column: str) -> Optional[FilterClause]:
        for clause in self.server + self.client:
            if clause.column == column:
                return clause
        return None

    def all(self) -> Tuple[FilterClause, ...]:
        return self.server + self.client

    def __bool__(self) -> bool:
        return bool(self.server or self.client)

    def __len__(self) -> int:
        return len(self.server) + len(self.client)
