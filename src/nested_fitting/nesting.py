from __future__ import annotations

from typing import Callable, Dict, Hashable, Iterator, Mapping, Optional, Sequence, TypeVar

import pandas as pd

T = TypeVar("T")


class Nested(Mapping[Hashable, pd.DataFrame]):
    """Group id -> sub-table, in first-appearance group order.

    Each sub-table is an independent copy holding every non-key column with
    its rows in original order and a fresh RangeIndex. The mapping itself is
    read-only; callers work on the sub-tables without affecting one another.
    """

    def __init__(
        self,
        key: str,
        groups: Mapping[Hashable, pd.DataFrame],
        columns: Optional[Sequence[str]] = None,
    ):
        self.key = key
        # column order of the table that was nested, key included
        self.columns = None if columns is None else tuple(columns)
        self._groups: Dict[Hashable, pd.DataFrame] = dict(groups)

    def __getitem__(self, group: Hashable) -> pd.DataFrame:
        return self._groups[group]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __repr__(self) -> str:
        sizes = ", ".join(f"{g!r}: {len(t)}" for g, t in self._groups.items())
        return f"Nested(key={self.key!r}, {{{sizes}}})"

    def sizes(self) -> Dict[Hashable, int]:
        return {g: len(t) for g, t in self._groups.items()}

    def map(self, fn: Callable[[pd.DataFrame], T]) -> Dict[Hashable, T]:
        """Apply `fn` to each sub-table, keyed by group id."""
        return {g: fn(t) for g, t in self._groups.items()}

    def to_frame(self, column: str = "data") -> pd.DataFrame:
        """Two-column view: the key and a list-column of sub-tables."""
        return pd.DataFrame(
            {self.key: list(self._groups.keys()), column: list(self._groups.values())}
        )


def nest(long: pd.DataFrame, key: str) -> Nested:
    """Partition `long` by `key` into a Nested mapping."""
    if key not in long.columns:
        raise KeyError(key)
    groups: Dict[Hashable, pd.DataFrame] = {}
    for gid, sub in long.groupby(key, sort=False, dropna=False):
        groups[gid] = sub.drop(columns=[key]).reset_index(drop=True).copy()
    return Nested(key, groups, columns=list(long.columns))


def unnest(nested: Nested) -> pd.DataFrame:
    """Concatenate the sub-tables back into one long table.

    The key column is restored at its original position (first, when the
    Nested was built by hand). Columns added to the sub-tables after nesting
    follow the original ones. Groups are emitted in the Nested's order,
    rows in sub-table order.
    """
    frames = []
    for gid, sub in nested.items():
        frame = sub.copy()
        frame.insert(0, nested.key, gid)
        if nested.columns is not None:
            added = [c for c in frame.columns if c not in nested.columns]
            frame = frame[[c for c in nested.columns if c in frame.columns] + added]
        frames.append(frame)
    if not frames:
        return pd.DataFrame(columns=[nested.key])
    return pd.concat(frames, ignore_index=True)
