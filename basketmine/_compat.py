from __future__ import annotations

import importlib.util
from typing import Any


def _module_of(data: Any) -> str:
    return getattr(type(data), "__module__", "") or ""


def is_polars_frame(data: Any) -> bool:
    return type(data).__name__ == "DataFrame" and _module_of(data).startswith("polars")


def is_arrow_table(data: Any) -> bool:
    return type(data).__name__ == "Table" and _module_of(data).startswith("pyarrow")


def require_pyarrow(reason: str = "") -> None:
    """Raise a readable ``ImportError`` when pyarrow is not installed."""
    if importlib.util.find_spec("pyarrow") is None:
        msg = "Missing optional dependency 'pyarrow'. Use pip or conda to install basketmine[arrow]."
        if reason:
            msg += f" {reason}"
        raise ImportError(msg)


def to_dataframe(data: Any) -> Any:
    """Coerce PyArrow / Polars inputs to pandas; return everything else unchanged."""
    if is_arrow_table(data):
        return data.to_pandas()

    if is_polars_frame(data):
        # polars -> pandas goes through Arrow memory
        require_pyarrow("It is required to convert polars frames.")
        return data.to_pandas()

    return data
