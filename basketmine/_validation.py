"""Input validation utilities for one-hot tables and mining thresholds."""

from __future__ import annotations

import math
import numbers
import warnings

import numpy as np
import pandas as pd


def valid_input_check(df: pd.DataFrame) -> None:
    """Validate a one-hot / boolean DataFrame before mining.

    Parameters
    ----------
    df:
        Input DataFrame.  Allowed values: 0/1 or True/False.
    """
    if df is None or df.size == 0:
        return

    if hasattr(df, "sparse"):
        if not isinstance(df.columns[0], str) and df.columns[0] != 0:
            raise ValueError(
                "Due to current limitations in Pandas, "
                "if the sparse format has integer column names,"
                "names, please make sure they either start "
                "with `0` or cast them as string column names: "
                "`df.columns = [str(i) for i in df.columns`]."
            )

    # Fast path: all bool columns
    if df.dtypes.apply(pd.api.types.is_bool_dtype).all():
        return

    warnings.warn(
        "DataFrames with non-bool types result in worse computational "
        "performance and their support might be discontinued in the future. "
        "Please use a DataFrame with bool type",
        DeprecationWarning,
        stacklevel=3,
    )

    if pd.isna(df).any().any():
        raise ValueError("NaN values are not permitted in the transaction table.")

    if hasattr(df, "sparse"):
        values = df.sparse.to_coo().tocoo().data
    else:
        values = df.values

    check_binary_values(values)


def check_binary_values(values: np.ndarray) -> None:
    """Raise if *values* holds anything other than 0/1 (or ``False``/``True``)."""
    values = np.asarray(values)
    if values.dtype == bool or values.size == 0:
        return
    if values.dtype.kind == "O":
        # object columns: compare elementwise, NaN/None never equal 0 or 1
        bad = np.array([not (v is True or v is False or v == 0 or v == 1) for v in values.ravel()])
        idxs = np.nonzero(bad)
        if len(idxs[0]) > 0:
            raise ValueError(
                "The allowed values for a DataFrame are True, False, 0, 1. Found value %s" % (values.ravel()[idxs[0][0]],)
            )
        return

    idxs = np.where((values != 1) & (values != 0))
    if len(idxs[0]) > 0:
        val = values[tuple(loc[0] for loc in idxs)]
        raise ValueError("The allowed values for a DataFrame are True, False, 0, 1. Found value %s" % (val,))


def check_min_support(min_support: float) -> None:
    """``min_support`` must be positive; values above 1 are legal and simply match nothing."""
    if not _is_real(min_support) or not min_support > 0.0:
        raise ValueError(
            "`min_support` must be a positive number within the interval `(0, 1]`. Got %s." % (min_support,)
        )


def check_fraction(name: str, value: float) -> None:
    """Thresholds such as ``min_confidence`` must lie in ``(0, 1]``."""
    if not _is_real(value) or not 0.0 < value <= 1.0:
        raise ValueError(f"`{name}` must be a number within the interval `(0, 1]`. Got {value}.")


def check_positive_int(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise ValueError(f"`{name}` must be an integer >= 1. Got {value!r}.")


def check_n_jobs(n_jobs: int) -> None:
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, numbers.Integral) or n_jobs == 0 or n_jobs < -1:
        raise ValueError(f"`n_jobs` must be -1 or a positive integer. Got {n_jobs!r}.")


def _is_real(value: object) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and not math.isnan(float(value))
