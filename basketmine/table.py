"""Read-only one-hot transaction table and call-scoped support counting."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

import numpy as np

from ._compat import to_dataframe
from ._validation import check_binary_values, valid_input_check

if TYPE_CHECKING:
    from .typing import Item, Itemset, TableLike

logger = logging.getLogger(__name__)

#: ``DataFrame.attrs`` flag set on every one-hot frame built by ``from_transactions``.
ENCODED_ATTR = "from_transactions"


def canonical_order(items: Iterable[Any]) -> list[Any]:
    """Sort *items* into the canonical total order used to build itemsets.

    Items sort by their natural order.  Mixed, mutually incomparable labels
    (e.g. ``int`` and ``str`` columns) fall back to ``(type name, str(item))``.
    """
    items = list(items)
    try:
        return sorted(items)
    except TypeError:
        return sorted(items, key=lambda x: (type(x).__name__, str(x)))


class TransactionTable:
    """Immutable boolean matrix: rows are transactions, columns are items.

    Parameters
    ----------
    matrix:
        2-D array-like of 0/1 or bool values.
    items:
        Label of every column.  Labels must be unique and hashable.
    allow_empty:
        Accept a table without item columns.  Only the encoder output of
        :func:`basketmine.from_transactions` is built this way; any other
        zero-column input is rejected.

    Notes
    -----
    The matrix is copied and flagged read-only, so a table can be shared by
    concurrent support scans.
    """

    __slots__ = ("_matrix", "_items", "_index", "_rank")

    def __init__(self, matrix: Any, items: Sequence[Item], allow_empty: bool = False) -> None:
        arr = np.asarray(matrix)
        if arr.ndim != 2:
            raise ValueError(f"Transaction matrix must be 2-D, got shape {arr.shape}")
        if arr.shape[1] == 0 and not allow_empty:
            raise ValueError("A transaction table needs at least one item column.")
        check_binary_values(arr)

        items = list(items)
        if len(items) != arr.shape[1]:
            raise ValueError(f"Got {len(items)} item labels for {arr.shape[1]} columns.")
        if len(set(items)) != len(items):
            raise ValueError("Item labels must be unique.")

        data = np.array(arr, dtype=bool, order="F", copy=True)
        data.setflags(write=False)

        self._matrix = data
        self._items: tuple[Item, ...] = tuple(items)
        self._index: dict[Item, int] = {item: i for i, item in enumerate(items)}
        self._rank: dict[Item, int] = {item: r for r, item in enumerate(canonical_order(items))}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_data(cls, data: TableLike, item_names: Sequence[Item] | None = None) -> TransactionTable:
        """Build a table from any supported one-hot input.

        Accepts an existing :class:`TransactionTable`, a pandas DataFrame
        (dense or sparse), a Polars DataFrame, a PyArrow Table, a 2-D numpy
        array or a scipy sparse matrix.  Column names become the item labels;
        for arrays and sparse matrices *item_names* supplies them (defaults to
        the column indices).
        """
        if isinstance(data, TransactionTable):
            if item_names is not None:
                raise ValueError("item_names cannot be given together with a TransactionTable.")
            return data

        import pandas as pd
        from scipy import sparse as sp

        data = to_dataframe(data)

        if isinstance(data, pd.DataFrame):
            valid_input_check(data)
            if hasattr(data, "sparse"):
                values = data.sparse.to_dense().to_numpy()
            else:
                values = data.to_numpy()
            names = list(data.columns) if item_names is None else list(item_names)
            return cls(values, names, allow_empty=bool(data.attrs.get(ENCODED_ATTR, False)))

        if sp.issparse(data):
            csr = sp.csr_matrix(data)
            csr.eliminate_zeros()
            values = csr.toarray()
        elif isinstance(data, np.ndarray):
            values = data
        else:
            raise TypeError(
                "Expected a pandas/polars DataFrame, pyarrow Table, numpy array, scipy sparse matrix "
                f"or TransactionTable, got {type(data)}"
            )

        if values.ndim != 2:
            raise ValueError(f"numpy array must be 2-D, got shape {values.shape}")
        names = list(range(values.shape[1])) if item_names is None else list(item_names)
        return cls(values, names)

    # ------------------------------------------------------------------
    # Shape & labels
    # ------------------------------------------------------------------

    @property
    def items(self) -> tuple[Item, ...]:
        """Item labels in column order."""
        return self._items

    @property
    def matrix(self) -> np.ndarray:
        """The read-only boolean matrix."""
        return self._matrix

    @property
    def n_transactions(self) -> int:
        return int(self._matrix.shape[0])

    @property
    def n_items(self) -> int:
        return int(self._matrix.shape[1])

    @property
    def shape(self) -> tuple[int, int]:
        return self.n_transactions, self.n_items

    def __len__(self) -> int:
        return self.n_transactions

    def __contains__(self, item: object) -> bool:
        return item in self._index

    def __repr__(self) -> str:
        return f"TransactionTable(n_transactions={self.n_transactions}, n_items={self.n_items})"

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def rank(self, item: Item) -> int:
        """Position of *item* in the canonical order."""
        return self._rank[item]

    def canonical(self, items: Iterable[Item]) -> Itemset:
        """Return *items* as a canonical itemset (deduplicated, canonically sorted)."""
        unique = set(items)
        missing = [i for i in unique if i not in self._index]
        if missing:
            raise KeyError(f"Unknown items: {missing}")
        return tuple(sorted(unique, key=self._rank.__getitem__))

    def canonical_items(self) -> list[Item]:
        return sorted(self._items, key=self._rank.__getitem__)

    # ------------------------------------------------------------------
    # Support
    # ------------------------------------------------------------------

    def column(self, item: Item) -> np.ndarray:
        """Presence flags of a single item across all transactions."""
        return self._matrix[:, self._index[item]]

    def count(self, itemset: Iterable[Item]) -> int:
        """Number of transactions containing every item of *itemset*."""
        cols = [self._index[item] for item in itemset]
        if self.n_transactions == 0:
            return 0
        if len(cols) == 1:
            return int(np.count_nonzero(self._matrix[:, cols[0]]))
        return int(np.count_nonzero(self._matrix[:, cols].all(axis=1)))

    def support(self, itemset: Iterable[Item]) -> float:
        """Fraction of transactions containing *itemset*; ``0.0`` for an empty table."""
        n = self.n_transactions
        if n == 0:
            return 0.0
        return self.count(itemset) / n

    def item_supports(self) -> np.ndarray:
        """Support of every single item, in column order."""
        if self.n_transactions == 0:
            return np.zeros(self.n_items, dtype=np.float64)
        return self._matrix.mean(axis=0, dtype=np.float64)


def resolve_n_jobs(n_jobs: int) -> int:
    if n_jobs == -1:
        return os.cpu_count() or 1
    return n_jobs


class SupportCounter:
    """Memoised support lookups against one :class:`TransactionTable`.

    A counter belongs to a single mining or rule-generation call; it is never
    shared across calls.

    Parameters
    ----------
    table:
        The table to scan.
    n_jobs:
        Worker threads used by :meth:`support_many`.  ``-1`` uses all cores.
    """

    def __init__(self, table: TransactionTable, n_jobs: int = 1) -> None:
        self.table = table
        self.n_jobs = resolve_n_jobs(n_jobs)
        self._cache: dict[Itemset, float] = {}
        self.scans = 0

    def __len__(self) -> int:
        return len(self._cache)

    def support(self, itemset: Itemset) -> float:
        key = tuple(itemset)
        value = self._cache.get(key)
        if value is None:
            value = self.table.support(key)
            self.scans += 1
            self._cache[key] = value
        return value

    def support_many(self, itemsets: Sequence[Itemset]) -> list[float]:
        """Support of every itemset; scans not yet cached run in parallel.

        Returns only after every scan has finished.
        """
        missing = list(dict.fromkeys(tuple(s) for s in itemsets if tuple(s) not in self._cache))
        if missing:
            workers = min(self.n_jobs, len(missing))
            if workers > 1:
                logger.debug("Scanning %d itemsets on %d threads", len(missing), workers)
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    values = list(pool.map(self.table.support, missing))
            else:
                values = [self.table.support(s) for s in missing]
            self.scans += len(missing)
            self._cache.update(zip(missing, values))
        return [self._cache[tuple(s)] for s in itemsets]
