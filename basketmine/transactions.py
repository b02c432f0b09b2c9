from __future__ import annotations

import time
import typing
from collections import Counter
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ._compat import to_dataframe
from ._validation import check_positive_int
from .table import ENCODED_ATTR, canonical_order

if TYPE_CHECKING:
    import pandas as pd


def from_transactions(
    data: pd.DataFrame | Sequence[Sequence[Any]] | Any,
    transaction_col: str | None = None,
    item_col: str | None = None,
    min_item_count: int = 1,
    subset_size: int | None = None,
    verbose: int = 0,
) -> pd.DataFrame:
    """Convert long-format purchases to a one-hot boolean DataFrame.

    Parameters
    ----------
    data
        One of:

        - **Pandas / Polars DataFrame** (or PyArrow Table) with (at least)
          two columns: one identifying the basket (an order, or a customer to
          aggregate every purchase of that customer into one row) and one
          holding the item.
        - **List of lists** where each inner list contains the items of a
          single basket, e.g. ``[["bread", "milk"], ["bread", "eggs"]]``.

    transaction_col
        Name of the column that identifies baskets.  If ``None`` the first
        column is used.  Ignored for list-of-lists input.

    item_col
        Name of the column that contains item values.  If ``None`` the second
        column is used.  Ignored for list-of-lists input.

    min_item_count
        Minimum number of times an item must appear to be included in the
        resulting one-hot-encoded matrix. Default is 1.

    subset_size
        Keep only the first *subset_size* purchase rows (or baskets, for
        list-of-lists input) before encoding.  ``None`` keeps everything.

    Returns
    -------
    pandas.DataFrame
        A boolean DataFrame, one row per basket (in order of first
        appearance) and one column per item (canonically sorted), ready for
        :func:`basketmine.apriori`.  The frame is flagged in ``attrs`` so an
        empty purchase log (no item columns) still mines to empty results.

    Examples
    --------
    >>> import basketmine
    >>> import pandas as pd
    >>> df = pd.DataFrame({
    ...     "customer": ["ann", "ann", "bob", "bob", "cid"],
    ...     "item": ["a", "b", "a", "c", "b"],
    ... })
    >>> ohe = basketmine.from_transactions(df)
    >>> basketmine.apriori(ohe, min_support=0.5, max_size=2)
    [('a',), ('b',)]
    """
    if min_item_count < 1:
        raise ValueError(f"`min_item_count` must be >= 1. Got {min_item_count}.")
    if subset_size is not None:
        check_positive_int("subset_size", subset_size)

    data = to_dataframe(data)

    import pandas as _pd

    if isinstance(data, (list, tuple)):
        if subset_size is not None:
            data = data[:subset_size]
        res = _from_list(data, min_item_count=min_item_count, verbose=verbose)
    elif isinstance(data, _pd.DataFrame):
        if subset_size is not None:
            data = data.iloc[:subset_size]
        res = _from_dataframe(data, transaction_col, item_col, min_item_count=min_item_count, verbose=verbose)
    else:
        raise TypeError(f"Expected a Pandas/Polars DataFrame, PyArrow Table or list of lists, got {type(data)}")

    res.attrs[ENCODED_ATTR] = True
    return res


def _from_list(
    transactions: Sequence[Sequence[Any]],
    min_item_count: int = 1,
    verbose: int = 0,
) -> pd.DataFrame:
    import numpy as np
    import pandas as pd

    t0 = 0.0
    if verbose:
        print(f"[{time.strftime('%X')}] Extracting unique items from list of lists...")
        t0 = time.perf_counter()

    # an item listed twice in one basket counts once
    counts: Counter[Any] = Counter()
    for txn in transactions:
        counts.update(set(txn))
    all_items = canonical_order(item for item, count in counts.items() if count >= min_item_count)
    item_to_idx = {item: i for i, item in enumerate(all_items)}

    matrix = np.zeros((len(transactions), len(all_items)), dtype=bool)
    for i, txn in enumerate(transactions):
        cols = [item_to_idx[item] for item in txn if item in item_to_idx]
        matrix[i, cols] = True

    if verbose:
        print(
            f"[{time.strftime('%X')}] Found {len(all_items):,} unique items in {len(transactions):,} baskets "
            f"({time.perf_counter() - t0:.2f}s)."
        )

    return pd.DataFrame(matrix, columns=pd.Index(all_items, dtype="object"))


def _from_dataframe(
    df: pd.DataFrame,
    transaction_col: str | None,
    item_col: str | None,
    min_item_count: int = 1,
    verbose: int = 0,
) -> pd.DataFrame:
    import numpy as np
    import pandas as pd

    t0 = 0.0
    if verbose:
        print(f"[{time.strftime('%X')}] One-hot encoding DataFrame (shape={df.shape})...")
        t0 = time.perf_counter()

    cols = list(df.columns)

    if len(cols) < 2:
        raise ValueError(f"DataFrame must have at least 2 columns (transaction id + item), got {len(cols)}: {cols}")

    txn_col = transaction_col or cols[0]
    itm_col = item_col or cols[1]

    if txn_col not in df.columns:
        raise ValueError(f"Transaction column '{txn_col}' not found. Available columns: {cols}")
    if itm_col not in df.columns:
        raise ValueError(f"Item column '{itm_col}' not found. Available columns: {cols}")

    df = df.dropna(subset=[txn_col, itm_col])

    if min_item_count > 1:
        # count baskets, not rows, so repeated purchases do not inflate an item
        counts = df.drop_duplicates(subset=[txn_col, itm_col])[itm_col].value_counts()
        valid_items = typing.cast("pd.Index", counts[counts >= min_item_count].index)
        df = df.loc[df[itm_col].isin(valid_items)]

    if df.empty:
        return pd.DataFrame(columns=pd.Index([], dtype="object"), dtype=bool)

    txn_codes, txn_uniques = pd.factorize(df[txn_col], sort=False)
    item_uniques = canonical_order(pd.unique(df[itm_col]))
    item_to_idx = {item: i for i, item in enumerate(item_uniques)}
    item_codes = df[itm_col].map(item_to_idx).to_numpy(dtype=np.int64)

    matrix = np.zeros((len(txn_uniques), len(item_uniques)), dtype=bool)
    matrix[txn_codes, item_codes] = True

    res = pd.DataFrame(matrix, columns=pd.Index(item_uniques, dtype="object"))

    if verbose:
        print(f"[{time.strftime('%X')}] One-hot encoding completed in {time.perf_counter() - t0:.2f}s.")

    return res
