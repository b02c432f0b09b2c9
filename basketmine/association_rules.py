"""Association rule generation from frequent itemsets."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from itertools import combinations
from typing import TYPE_CHECKING, Any

from ._validation import check_fraction
from .table import SupportCounter, TransactionTable

if TYPE_CHECKING:
    import pandas as pd

    from .typing import Itemset, TableLike

logger = logging.getLogger(__name__)

RULE_COLUMNS = ["antecedents", "consequents", "support", "confidence", "lift"]


@dataclass(frozen=True)
class AssociationRule:
    """Directional rule ``antecedent -> consequent``.

    Both sides are disjoint canonical itemsets and their union is the
    frequent itemset the rule was split from.
    """

    antecedent: Itemset
    consequent: Itemset
    support: float
    confidence: float
    lift: float

    @property
    def itemset(self) -> frozenset[Any]:
        return frozenset(self.antecedent) | frozenset(self.consequent)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def safe_ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``, or ``0.0`` when the divisor is zero or not finite."""
    if denominator == 0.0 or not math.isfinite(denominator) or not math.isfinite(numerator):
        return 0.0
    return numerator / denominator


def _as_itemsets(itemsets: Iterable[Any] | pd.DataFrame) -> list[Any]:
    if hasattr(itemsets, "columns"):
        if "itemsets" not in itemsets.columns:  # type: ignore[union-attr]
            raise ValueError("The input DataFrame must contain an 'itemsets' column")
        return list(itemsets["itemsets"])  # type: ignore[index]
    return list(itemsets)


def generate_rules(
    data: TableLike,
    itemsets: Iterable[Itemset] | pd.DataFrame,
    min_confidence: float = 0.8,
) -> list[AssociationRule]:
    """Split every frequent itemset into scored rules.

    Parameters
    ----------
    data:
        The transaction table the itemsets were mined from.
    itemsets:
        Output of :func:`basketmine.apriori` (or the DataFrame of
        :func:`basketmine.frequent_itemsets`).  Itemsets of size 1 are
        skipped.
    min_confidence:
        Minimum confidence in ``(0, 1]``.

    Returns
    -------
    list[AssociationRule]
        One rule per retained split.  An itemset of size ``k`` yields at
        most ``2**k - 2`` rules.  Metrics:

        * ``support = support(itemset)``
        * ``confidence = support / support(antecedent)``
        * ``lift = confidence / support(consequent)``

        A zero divisor gives a ``0.0`` metric instead of an error.
    """
    check_fraction("min_confidence", min_confidence)

    table = TransactionTable.from_data(data)
    counter = SupportCounter(table)

    rules: list[AssociationRule] = []
    n_eligible = 0
    for raw in _as_itemsets(itemsets):
        if len(raw) < 2:
            continue
        itemset = table.canonical(raw)
        n_eligible += 1
        support = counter.support(itemset)

        for size in range(1, len(itemset)):
            for antecedent in combinations(itemset, size):
                chosen = set(antecedent)
                consequent = tuple(item for item in itemset if item not in chosen)

                confidence = safe_ratio(support, counter.support(antecedent))
                if confidence < min_confidence:
                    continue
                lift = safe_ratio(confidence, counter.support(consequent))
                rules.append(AssociationRule(antecedent, consequent, support, confidence, lift))

    logger.debug("Generated %d rules from %d eligible itemsets", len(rules), n_eligible)
    return rules


def rules_to_frame(rules: Sequence[AssociationRule]) -> pd.DataFrame:
    """Export rules as an ``antecedents / consequents / support / confidence / lift`` DataFrame."""
    import pandas as pd

    if not rules:
        return pd.DataFrame(columns=pd.Index(RULE_COLUMNS))

    return pd.DataFrame(
        {
            "antecedents": [r.antecedent for r in rules],
            "consequents": [r.consequent for r in rules],
            "support": [r.support for r in rules],
            "confidence": [r.confidence for r in rules],
            "lift": [r.lift for r in rules],
        }
    )


def rules_from_frame(df: pd.DataFrame) -> list[AssociationRule]:
    """Inverse of :func:`rules_to_frame`."""
    missing = [c for c in RULE_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"The rules DataFrame is missing columns: {missing}")

    return [
        AssociationRule(
            antecedent=tuple(ant),
            consequent=tuple(con),
            support=float(sup),
            confidence=float(conf),
            lift=float(lift),
        )
        for ant, con, sup, conf, lift in zip(
            df["antecedents"], df["consequents"], df["support"], df["confidence"], df["lift"], strict=False
        )
    ]


def as_rules(rules: Sequence[AssociationRule] | pd.DataFrame) -> list[AssociationRule]:
    if hasattr(rules, "columns"):
        return rules_from_frame(rules)  # type: ignore[arg-type]
    return list(rules)  # type: ignore[arg-type]
