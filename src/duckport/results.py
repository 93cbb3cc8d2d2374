# src/duckport/results.py
"""
Result types returned to callers.

Both are plain host-owned values: nothing here keeps a reference into
engine memory or a live process.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


def unique_columns(names: List[str]) -> List[str]:
    """Suffix repeated names (`a`, `a` -> `a`, `a_1`) so rows can be keyed by name."""
    taken = set(names)
    seen: Dict[str, int] = {}
    out: List[str] = []
    for name in names:
        if name not in seen:
            seen[name] = 0
            out.append(name)
            continue
        n = seen[name]
        candidate = name
        while candidate in taken:
            n += 1
            candidate = f"{name}_{n}"
        seen[name] = n
        taken.add(candidate)
        out.append(candidate)
    return out


@dataclass
class QueryResult:
    """
    Columns plus rows, each row a dict keyed by column name in column order.

    Values are str/None by default, or bool/int/float for typed columns when
    the producing backend runs in typed mode.
    """

    columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(set(self.columns)) != len(self.columns):
            raise ValueError(f"Duplicate column names in result: {self.columns}")

    # ---------- Construction ----------

    @classmethod
    def from_tuples(cls, columns: List[str], tuples: List[Tuple[Any, ...]]) -> "QueryResult":
        cols = unique_columns(list(columns))
        rows = []
        for t in tuples:
            if len(t) != len(cols):
                raise ValueError(
                    f"Row has {len(t)} values but result declares {len(cols)} columns"
                )
            rows.append(dict(zip(cols, t)))
        return cls(columns=cols, rows=rows)

    # ---------- Access ----------

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.rows)

    def __getitem__(self, index: int) -> Dict[str, Any]:
        return self.rows[index]

    def __bool__(self) -> bool:
        return bool(self.rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        """Value at row 0, column 0; None for an empty result."""
        if not self.rows or not self.columns:
            return None
        return self.rows[0][self.columns[0]]

    def column(self, name: str) -> List[Any]:
        if name not in self.columns:
            raise KeyError(name)
        return [row[name] for row in self.rows]

    # ---------- Export ----------

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [dict(row) for row in self.rows]

    def to_tuples(self) -> List[Tuple[Any, ...]]:
        return [tuple(row[c] for c in self.columns) for row in self.rows]

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps({"columns": self.columns, "rows": self.rows}, indent=indent, default=str)

    def to_polars(self):
        """Convert to a Polars DataFrame (column order preserved)."""
        import polars as pl

        data = {c: [row[c] for row in self.rows] for c in self.columns}
        return pl.DataFrame(data, strict=False)

    def __repr__(self) -> str:
        return f"QueryResult(columns={self.columns}, rows={len(self.rows)})"


@dataclass(frozen=True)
class ExitOutcome:
    """What one engine process run produced."""

    returncode: int
    output: str
    script_path: str
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0
