from __future__ import annotations

import logging
import sys
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ._validation import check_fraction, check_min_support, check_n_jobs, check_positive_int
from .apriori import _build_result, _mine
from .association_rules import AssociationRule, generate_rules, rules_to_frame
from .popularity import adaptive_coefficient, adjust_lift, build_popularity_index
from .recommend import Predictions, predict
from .table import SupportCounter, TransactionTable

if TYPE_CHECKING:
    import pandas as pd
    import polars as pl

    if sys.version_info >= (3, 11):
        from typing import Self
    else:
        from typing_extensions import Self

    from .typing import Item, Itemset, TableLike

logger = logging.getLogger(__name__)


class BaseModel(ABC):
    """Abstract base class for basketmine models.

    Provides the shared data ingestion shorthands (``from_pandas``,
    ``from_polars``, ...) on top of :meth:`from_transactions`.
    """

    @classmethod
    @abstractmethod
    def from_transactions(
        cls,
        data: Any,
        transaction_col: str | None = None,
        item_col: str | None = None,
        verbose: int = 0,
        **kwargs: Any,
    ) -> Self:
        """Initialize the model from a long-format DataFrame or list of baskets.

        Must be implemented by subclasses.
        """

    def __dir__(self) -> list[str]:
        """Hide internal attributes from REPL completion."""
        return [k for k in super().__dir__() if not k.startswith("_")]

    @classmethod
    def from_pandas(
        cls,
        df: pd.DataFrame,
        transaction_col: str | None = None,
        item_col: str | None = None,
        verbose: int = 0,
        **kwargs: Any,
    ) -> Self:
        """Shorthand for ``from_transactions(df, transaction_col, item_col)``."""
        return cls.from_transactions(df, transaction_col=transaction_col, item_col=item_col, verbose=verbose, **kwargs)

    @classmethod
    def from_polars(
        cls,
        df: pl.DataFrame,
        transaction_col: str | None = None,
        item_col: str | None = None,
        verbose: int = 0,
        **kwargs: Any,
    ) -> Self:
        """Shorthand for ``from_transactions(df, transaction_col, item_col)``."""
        return cls.from_transactions(df, transaction_col=transaction_col, item_col=item_col, verbose=verbose, **kwargs)


@dataclass(frozen=True)
class AnalysisResult:
    """Everything one market-basket run produces.

    ``rules`` are popularity-corrected and sorted by lift, highest first.
    """

    itemsets: list[Itemset]
    supports: dict[Itemset, float]
    rules: list[AssociationRule]
    popularity_index: dict[Item, float]
    coefficient: float
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def freq_itemsets(self) -> pd.DataFrame:
        return _build_result([(i, self.supports[i]) for i in self.itemsets], self.meta.get("n_transactions", 0))

    @property
    def rules_frame(self) -> pd.DataFrame:
        return rules_to_frame(self.rules)


def _label(itemset: Iterable[Item]) -> str:
    return " + ".join(str(item) for item in itemset)


class MarketBasketAnalysis(BaseModel):
    """Apriori mining, rule generation, popularity correction and ranking in one estimator.

    Parameters
    ----------
    min_support : float, default=0.01
        Minimum itemset support (fraction of baskets).
    min_confidence : float, default=0.15
        Minimum rule confidence in ``(0, 1]``.
    max_size : int, default=2
        Largest itemset mined.  Runtime grows quickly with this value.
    n_jobs : int, default=1
        Threads used for support scans.  ``-1`` uses all cores.
    verbose : int, default=0
        If > 0, print progress.

    Examples
    --------
    .. code-block:: python

        from basketmine import MarketBasketAnalysis

        mba = MarketBasketAnalysis.from_transactions(orders, transaction_col="customer", item_col="book")
        mba.fit()
        mba.format_results(top_n=10)["summary"]
        mba.predict(["book-a", "book-b"], top_n=5)
    """

    def __init__(
        self,
        min_support: float = 0.01,
        min_confidence: float = 0.15,
        max_size: int = 2,
        n_jobs: int = 1,
        verbose: int = 0,
    ) -> None:
        check_min_support(min_support)
        check_fraction("min_confidence", min_confidence)
        check_positive_int("max_size", max_size)
        check_n_jobs(n_jobs)

        self.min_support = min_support
        self.min_confidence = min_confidence
        self.max_size = max_size
        self.n_jobs = n_jobs
        self.verbose = verbose

        self._prepared_table: TransactionTable | None = None
        self._result: AnalysisResult | None = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"min_support={self.min_support}, "
            f"min_confidence={self.min_confidence}, "
            f"max_size={self.max_size}, "
            f"fitted={self._result is not None})"
        )

    @classmethod
    def from_transactions(
        cls,
        data: Any,
        transaction_col: str | None = None,
        item_col: str | None = None,
        verbose: int = 0,
        min_item_count: int = 1,
        subset_size: int | None = None,
        **kwargs: Any,
    ) -> MarketBasketAnalysis:
        """Build an unfitted model from long-format purchases.

        Every distinct value of *transaction_col* becomes one basket, so
        passing a customer column aggregates all purchases of a customer.
        *subset_size* keeps only the first purchase rows (or baskets, for a
        list of baskets) before encoding.  An empty purchase log gives a
        model whose fit finds nothing.  Extra keyword arguments go to the
        constructor.
        """
        from .transactions import from_transactions

        model = cls(verbose=verbose, **kwargs)
        one_hot = from_transactions(
            data,
            transaction_col=transaction_col,
            item_col=item_col,
            min_item_count=min_item_count,
            subset_size=subset_size,
            verbose=verbose,
        )
        model._prepared_table = TransactionTable.from_data(one_hot)
        return model

    # ── fit ────────────────────────────────────────────────────────────

    def fit(
        self,
        data: TableLike | None = None,
        subset_size: int | None = None,
        item_names: Sequence[Item] | None = None,
    ) -> MarketBasketAnalysis:
        """Mine itemsets and rules, then correct lift for popularity bias.

        Parameters
        ----------
        data
            One-hot table.  If *None*, uses the table prepared by
            :meth:`from_transactions`.
        subset_size
            Only analyse the first *subset_size* baskets of the one-hot table.
            To cut the raw purchase rows before they are grouped into
            baskets, pass *subset_size* to :meth:`from_transactions` instead.
        item_names
            Item labels for numpy / scipy input.
        """
        if data is None:
            table = self._prepared_table
            if table is None:
                raise ValueError("No data provided. Pass a table or use from_transactions() first.")
        else:
            table = TransactionTable.from_data(data, item_names=item_names)

        if subset_size is not None:
            check_positive_int("subset_size", subset_size)
            table = TransactionTable(table.matrix[:subset_size], table.items, allow_empty=True)

        t0 = time.perf_counter()
        counter = SupportCounter(table, n_jobs=self.n_jobs)
        found = _mine(table, counter, self.min_support, self.max_size, self.verbose)
        itemsets = [itemset for itemset, _ in found]

        rules = generate_rules(table, itemsets, self.min_confidence)
        popularity_index = build_popularity_index(table)
        coefficient = adaptive_coefficient(rules, popularity_index)
        adjusted = [adjust_lift(rule, popularity_index, coefficient) for rule in rules]
        adjusted.sort(key=lambda r: r.lift, reverse=True)

        logger.info(
            "Market basket analysis: %d itemsets, %d rules from %d transactions (coefficient=%.4f)",
            len(itemsets),
            len(rules),
            table.n_transactions,
            coefficient,
        )
        if self.verbose:
            print(
                f"[{time.strftime('%X')}] {len(itemsets):,} itemsets, {len(rules):,} rules "
                f"in {time.perf_counter() - t0:.2f}s."
            )

        self._result = AnalysisResult(
            itemsets=itemsets,
            supports=dict(found),
            rules=adjusted,
            popularity_index=popularity_index,
            coefficient=coefficient,
            meta={
                "itemsets_count": len(itemsets),
                "rules_count": len(rules),
                "min_support": self.min_support,
                "min_confidence": self.min_confidence,
                "max_size": self.max_size,
                "n_transactions": table.n_transactions,
            },
        )
        return self

    # ── results ────────────────────────────────────────────────────────

    def _check_fitted(self) -> AnalysisResult:
        if self._result is None:
            raise RuntimeError("Model has not been fitted yet. Call .fit() first.")
        return self._result

    @property
    def result_(self) -> AnalysisResult:
        return self._check_fitted()

    @property
    def itemsets_(self) -> list[Itemset]:
        return self._check_fitted().itemsets

    @property
    def rules_(self) -> list[AssociationRule]:
        """Popularity-corrected rules, highest lift first."""
        return self._check_fitted().rules

    @property
    def association_rules_(self) -> pd.DataFrame:
        return self._check_fitted().rules_frame

    def predict(
        self,
        purchased_items: Iterable[Item],
        top_n: int = 5,
        min_confidence: float = 0.1,
    ) -> Predictions:
        """Rank next items for a purchase history using the fitted rules."""
        return predict(self.rules_, purchased_items, top_n=top_n, min_confidence=min_confidence)

    def recommend_for_cart(self, items: Iterable[Item], n: int = 5) -> list[Any]:
        """Suggest items to add to an active cart, best first."""
        return self.predict(items, top_n=n).items

    def format_results(self, top_n: int = 10) -> dict[str, Any]:
        """Tabulate the fitted rules for reporting.

        Returns
        -------
        dict
            ``rules_table``
                DataFrame with readable ``antecedent_str`` / ``consequent_str``
                columns next to ``support``, ``confidence`` and ``lift``.
            ``rules_grouped``
                ``{antecedent_str: DataFrame}`` of the rules sharing an
                antecedent.
            ``top_rules``
                The first *top_n* rules.
            ``summary``
                Itemset and rule counts plus the thresholds used.
        """
        import pandas as pd

        check_positive_int("top_n", top_n)
        result = self._check_fitted()

        table = pd.DataFrame(
            {
                "antecedent_str": [_label(r.antecedent) for r in result.rules],
                "consequent_str": [_label(r.consequent) for r in result.rules],
                "support": [r.support for r in result.rules],
                "confidence": [r.confidence for r in result.rules],
                "lift": [r.lift for r in result.rules],
            },
            columns=pd.Index(["antecedent_str", "consequent_str", "support", "confidence", "lift"]),
        )
        grouped = {
            str(key): group.drop(columns="antecedent_str").reset_index(drop=True)
            for key, group in table.groupby("antecedent_str", sort=False)
        }

        return {
            "rules_table": table,
            "rules_grouped": grouped,
            "top_rules": result.rules[:top_n],
            "summary": {
                "itemsets": result.meta["itemsets_count"],
                "rules": result.meta["rules_count"],
                "min_support": result.meta["min_support"],
                "min_confidence": result.meta["min_confidence"],
            },
        }
