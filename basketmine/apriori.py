"""Apriori frequent itemset mining with canonical-order candidate generation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any

from ._validation import check_min_support, check_n_jobs, check_positive_int
from .table import SupportCounter, TransactionTable

if TYPE_CHECKING:
    import pandas as pd

    from .typing import Item, Itemset, TableLike

logger = logging.getLogger(__name__)


def join_itemsets(
    itemsets: Iterable[Itemset],
    k: int,
    key: Callable[[Item], Any] | None = None,
) -> list[Itemset]:
    """Generate size-*k* candidates from frequent (k-1)-itemsets.

    Itemsets are grouped by their first ``k - 2`` items.  Within a group a
    pair ``(a, b)`` is joined into ``prefix + (a[-1], b[-1])`` only when
    ``b[-1]`` sorts strictly after ``a[-1]``, so every candidate is produced
    exactly once and already in canonical order.

    Parameters
    ----------
    itemsets:
        Frequent itemsets; only those of size ``k - 1`` take part.
    k:
        Size of the candidates to build, ``k >= 2``.
    key:
        Sort key of the canonical item order.  Defaults to the items themselves.

    Examples
    --------
    >>> join_itemsets([("A", "B"), ("A", "C"), ("B", "C")], 3)
    [('A', 'B', 'C')]
    """
    if k < 2:
        raise ValueError(f"Candidates are built for k >= 2, got k={k}")

    by_prefix: dict[Itemset, list[Itemset]] = {}
    for itemset in itemsets:
        if len(itemset) == k - 1:
            itemset = tuple(itemset)
            by_prefix.setdefault(itemset[: k - 2], []).append(itemset)

    order = key if key is not None else _identity
    candidates: list[Itemset] = []
    for prefix, group in by_prefix.items():
        for first in group:
            last_first = order(first[-1])
            for second in group:
                if order(second[-1]) > last_first:
                    candidates.append(prefix + (first[-1], second[-1]))
    return candidates


def _identity(item: Item) -> Any:
    return item


def _has_infrequent_subset(candidate: Itemset, frequent: set[Itemset]) -> bool:
    # the two subsets that dropped one of the last two items are the joined parents
    for skip in range(len(candidate) - 2):
        if candidate[:skip] + candidate[skip + 1 :] not in frequent:
            return True
    return False


def _mine(
    table: TransactionTable,
    counter: SupportCounter,
    min_support: float,
    max_size: int,
    verbose: int = 0,
) -> list[tuple[Itemset, float]]:
    t0 = time.perf_counter()
    if verbose:
        print(
            f"[{time.strftime('%X')}] Mining {table.n_transactions:,} transactions x {table.n_items:,} items "
            f"(min_support={min_support}, max_size={max_size})..."
        )

    singles = [(item,) for item in table.canonical_items()]
    current = [
        (itemset, support)
        for itemset, support in zip(singles, counter.support_many(singles))
        if support >= min_support
    ]
    found = list(current)
    logger.debug("Level 1: %d items, %d frequent", len(singles), len(current))

    k = 2
    while current and k <= max_size:
        frequent = {itemset for itemset, _ in current}
        candidates = [
            c
            for c in join_itemsets((itemset for itemset, _ in current), k, key=table.rank)
            if not _has_infrequent_subset(c, frequent)
        ]
        if not candidates:
            break

        # every scan of this level completes before the next join
        supports = counter.support_many(candidates)
        current = [(c, s) for c, s in zip(candidates, supports) if s >= min_support]
        found.extend(current)

        logger.debug("Level %d: %d candidates, %d frequent", k, len(candidates), len(current))
        if verbose:
            print(f"[{time.strftime('%X')}] Level {k}: {len(candidates):,} candidates, {len(current):,} frequent.")
        k += 1

    if verbose:
        print(f"[{time.strftime('%X')}] Found {len(found):,} frequent itemsets in {time.perf_counter() - t0:.2f}s.")
    return found


def apriori(
    data: TableLike,
    min_support: float = 0.5,
    max_size: int = 3,
    n_jobs: int = 1,
    verbose: int = 0,
    item_names: Sequence[Item] | None = None,
) -> list[Itemset]:
    """Find every frequent itemset of size ``1..max_size`` with Apriori.

    Parameters
    ----------
    data:
        One-hot transaction table (see :meth:`TransactionTable.from_data`).
    min_support:
        Minimum support, a positive fraction of transactions.  Values above
        ``1`` are accepted and produce no itemsets.
    max_size:
        Largest itemset cardinality to mine, ``>= 1``.
    n_jobs:
        Threads used for the support scans of one level.  ``-1`` uses all
        cores.
    verbose:
        If > 0, print progress.
    item_names:
        Item labels for numpy / scipy input.

    Returns
    -------
    list[tuple]
        Canonical itemsets, all size-1 itemsets first, then size 2 and so on,
        in generation order.  No two entries hold the same set of items.
    """
    check_min_support(min_support)
    check_positive_int("max_size", max_size)
    check_n_jobs(n_jobs)

    table = TransactionTable.from_data(data, item_names=item_names)
    counter = SupportCounter(table, n_jobs=n_jobs)
    return [itemset for itemset, _ in _mine(table, counter, min_support, max_size, verbose)]


def frequent_itemsets(
    data: TableLike,
    min_support: float = 0.5,
    max_size: int = 3,
    n_jobs: int = 1,
    verbose: int = 0,
    item_names: Sequence[Item] | None = None,
) -> pd.DataFrame:
    """Like :func:`apriori` but returns a ``support / itemsets`` DataFrame.

    The transaction count is stored in ``result.attrs["num_itemsets"]``.
    """
    import pandas as pd

    check_min_support(min_support)
    check_positive_int("max_size", max_size)
    check_n_jobs(n_jobs)

    table = TransactionTable.from_data(data, item_names=item_names)
    found = _mine(table, SupportCounter(table, n_jobs=n_jobs), min_support, max_size, verbose)
    return _build_result(found, table.n_transactions)


def _build_result(found: list[tuple[Itemset, float]], n_rows: int) -> pd.DataFrame:
    import pandas as pd

    result = pd.DataFrame(
        {
            "support": pd.Series([s for _, s in found], dtype="float64"),
            "itemsets": pd.Series([i for i, _ in found], dtype="object"),
        }
    )
    result.attrs["num_itemsets"] = n_rows
    return result


class Apriori:
    """Apriori estimator.

    Parameters
    ----------
    min_support:
        Minimum support threshold (fraction of transactions).
    max_size:
        Maximum itemset size.
    n_jobs:
        Threads used for support scans.
    verbose:
        Verbosity level.

    Examples
    --------
    .. code-block:: python

        from basketmine import Apriori

        model = Apriori(min_support=0.05, max_size=2).fit(one_hot_df)
        model.itemsets_
        model.freq_itemsets
    """

    def __init__(self, min_support: float = 0.5, max_size: int = 3, n_jobs: int = 1, verbose: int = 0) -> None:
        check_min_support(min_support)
        check_positive_int("max_size", max_size)
        check_n_jobs(n_jobs)
        self.min_support = min_support
        self.max_size = max_size
        self.n_jobs = n_jobs
        self.verbose = verbose

        self._found: list[tuple[Itemset, float]] | None = None
        self._n_transactions: int = 0

    def fit(self, data: TableLike, item_names: Sequence[Item] | None = None) -> Apriori:
        table = TransactionTable.from_data(data, item_names=item_names)
        counter = SupportCounter(table, n_jobs=self.n_jobs)
        self._found = _mine(table, counter, self.min_support, self.max_size, self.verbose)
        self._n_transactions = table.n_transactions
        return self

    def _check_fitted(self) -> list[tuple[Itemset, float]]:
        if self._found is None:
            raise RuntimeError("Call fit() before accessing the mined itemsets.")
        return self._found

    @property
    def itemsets_(self) -> list[Itemset]:
        """Frequent itemsets in generation order."""
        return [itemset for itemset, _ in self._check_fitted()]

    @property
    def supports_(self) -> dict[Itemset, float]:
        return dict(self._check_fitted())

    @property
    def freq_itemsets(self) -> pd.DataFrame:
        """Frequent itemsets as a ``support / itemsets`` DataFrame."""
        return _build_result(self._check_fitted(), self._n_transactions)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"min_support={self.min_support}, "
            f"max_size={self.max_size}, "
            f"fitted={self._found is not None})"
        )
