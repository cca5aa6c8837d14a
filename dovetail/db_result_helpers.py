"""FalkorDB result conversion helpers.

FalkorDB returns a QueryResult with a positional ``header``/``result_set``
pair plus write statistics. Repository code works with :class:`ResultSet`
instead: named columns, each an ordered list of cells, and the statistics
that write verification needs.

Usage:
    result = graph.query(cypher, params=params)
    rs = to_result_set(result)
    rs.columns["u"][0]          # first cell of column "u"
    for row in rs.rows(): ...   # dict per row
    rs.nodes_created            # write verification
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from dovetail.errors import IntegrityError

_STAT_NAMES = (
    "nodes_created",
    "nodes_deleted",
    "relationships_created",
    "relationships_deleted",
    "properties_set",
)


def _unwrap_value(val):
    """Convert FalkorDB Node/Edge objects to plain dicts.

    FalkorDB returns Node/Edge objects when Cypher selects full nodes
    (e.g., RETURN n) instead of properties (e.g., RETURN n.name).

    Uses duck-typing (checks for .properties attribute) so tests can feed
    lightweight fakes instead of driver objects.
    """
    if val is None:
        return None
    # FalkorDB Node: has .labels + .properties
    if hasattr(val, 'properties') and hasattr(val, 'labels'):
        return {"_id": val.id, "_labels": val.labels, **val.properties}
    # FalkorDB Edge: has .relation + .properties
    if hasattr(val, 'properties') and hasattr(val, 'relation'):
        return {"_id": val.id, "_type": val.relation, **val.properties}
    return val


@dataclass
class ResultSet:
    """Columnar query result: every column holds the same number of cells."""
    columns: dict[str, list[Any]] = field(default_factory=dict)
    nodes_created: int = 0
    nodes_deleted: int = 0
    relationships_created: int = 0
    relationships_deleted: int = 0
    properties_set: int = 0

    def __post_init__(self):
        lengths = {name: len(cells) for name, cells in self.columns.items()}
        if len(set(lengths.values())) > 1:
            raise IntegrityError(f"Result columns have unequal lengths: {lengths}")

    @property
    def row_count(self) -> int:
        for cells in self.columns.values():
            return len(cells)
        return 0

    def __len__(self) -> int:
        return self.row_count

    def column(self, name: str) -> list[Any]:
        """Cells of one column.

        Raises:
            IntegrityError: If the column is missing from a non-empty result.
        """
        if name not in self.columns:
            if self.row_count == 0:
                return []
            raise IntegrityError(f"Result set has no column '{name}' (got {list(self.columns)})")
        return self.columns[name]

    def rows(self) -> Iterator[dict[str, Any]]:
        """Iterate rows as dicts, in the order the datastore returned them."""
        names = list(self.columns)
        for i in range(self.row_count):
            yield {name: self.columns[name][i] for name in names}


def _stat(result, name: str) -> int:
    value = getattr(result, name, 0)
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def to_result_set(result) -> ResultSet:
    """Convert a FalkorDB QueryResult to a :class:`ResultSet`.

    Args:
        result: FalkorDB QueryResult with .header and .result_set attributes.

    Returns:
        ResultSet with one list per column and the write statistics.
    """
    stats = {name: _stat(result, name) for name in _STAT_NAMES}
    header = getattr(result, 'header', None) or []
    result_set = getattr(result, 'result_set', None) or []

    names = [h[1] if isinstance(h, (list, tuple)) else h for h in header]
    columns: dict[str, list[Any]] = {name: [] for name in names}
    for row in result_set:
        if len(row) != len(names):
            raise IntegrityError(
                f"Result row has {len(row)} cells but header names {len(names)} columns"
            )
        for name, cell in zip(names, row):
            columns[name].append(_unwrap_value(cell))
    return ResultSet(columns=columns, **stats)


def quote_identifier(name: str) -> str:
    """Backtick-quote a label or relationship type for inlining in Cypher.

    Labels cannot be bound as parameters, so this is the only escaping path
    for tokens that end up inside a query string.
    """
    return "`" + name.replace("`", "``") + "`"
