from __future__ import annotations

from collections.abc import Hashable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import numpy as np
    import pandas as pd
    import polars as pl
    import pyarrow as pa
    from scipy import sparse as sp

    from .table import TransactionTable

    #: Everything :meth:`TransactionTable.from_data` accepts.
    TableLike = TransactionTable | pd.DataFrame | pl.DataFrame | pa.Table | np.ndarray | sp.spmatrix
else:
    TableLike = Any

#: One catalog entry, e.g. a book title.  Items must be hashable and orderable.
Item = Hashable

#: Items in strictly increasing canonical order.
Itemset = tuple[Any, ...]
