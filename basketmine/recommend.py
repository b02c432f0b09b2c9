"""Next-item recommendations from association rules."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, overload

from ._validation import check_fraction, check_positive_int
from .association_rules import as_rules

if TYPE_CHECKING:
    import pandas as pd

    from .association_rules import AssociationRule
    from .typing import Item, Itemset

logger = logging.getLogger(__name__)

CONFIDENCE_WEIGHT = 0.8
LIFT_WEIGHT = 0.2
LIFT_CAP = 2.0

MATCHED_LABEL = "Next item predictions"
NO_MATCH_LABEL = "Next item predictions (no matches found)"

RECOMMENDATION_COLUMNS = ["item", "confidence", "lift", "relevance", "supporting_rules", "example_antecedent"]


def relevance_score(confidence: float, lift: float, support: float) -> float:
    """``0.8 * confidence + 0.2 * min(2.0, lift) + sqrt(support)``."""
    return CONFIDENCE_WEIGHT * confidence + LIFT_WEIGHT * min(LIFT_CAP, lift) + math.sqrt(support)


@dataclass(frozen=True)
class Recommendation:
    """One candidate next item, aggregated over every rule that predicts it."""

    item: Item
    confidence: float
    lift: float
    relevance: float
    supporting_rules: int
    example_antecedent: Itemset


class Predictions(Sequence[Recommendation]):
    """Ranked recommendations, best first.

    An empty result is labelled :data:`NO_MATCH_LABEL` instead of raising.
    """

    def __init__(self, recommendations: Iterable[Recommendation] = ()) -> None:
        self._recommendations: tuple[Recommendation, ...] = tuple(recommendations)

    @property
    def label(self) -> str:
        return MATCHED_LABEL if self._recommendations else NO_MATCH_LABEL

    @property
    def matched(self) -> bool:
        return bool(self._recommendations)

    @property
    def items(self) -> list[Item]:
        return [r.item for r in self._recommendations]

    @overload
    def __getitem__(self, index: int) -> Recommendation: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Recommendation]: ...

    def __getitem__(self, index: int | slice) -> Recommendation | Sequence[Recommendation]:
        return self._recommendations[index]

    def __len__(self) -> int:
        return len(self._recommendations)

    def __iter__(self) -> Iterator[Recommendation]:
        return iter(self._recommendations)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Predictions):
            return self._recommendations == other._recommendations
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._recommendations)

    def __repr__(self) -> str:
        return f"Predictions(label={self.label!r}, n={len(self)})"

    def to_frame(self) -> pd.DataFrame:
        import pandas as pd

        frame = pd.DataFrame(
            [
                {
                    "item": r.item,
                    "confidence": r.confidence,
                    "lift": r.lift,
                    "relevance": r.relevance,
                    "supporting_rules": r.supporting_rules,
                    "example_antecedent": r.example_antecedent,
                }
                for r in self._recommendations
            ],
            columns=pd.Index(RECOMMENDATION_COLUMNS),
        )
        frame.attrs["name"] = self.label
        return frame


class _Candidates:
    __slots__ = ("confidences", "lifts", "best", "antecedent")

    def __init__(self, antecedent: Itemset) -> None:
        self.confidences: list[float] = []
        self.lifts: list[float] = []
        self.best = -math.inf
        self.antecedent = antecedent


def predict(
    rules: Sequence[AssociationRule] | pd.DataFrame,
    purchased_items: Iterable[Item],
    top_n: int = 5,
    min_confidence: float = 0.1,
) -> Predictions:
    """Rank the next items a customer is likely to buy.

    Parameters
    ----------
    rules:
        Association rules, e.g. popularity-corrected rules.
    purchased_items:
        The customer's purchase history.
    top_n:
        Maximum number of recommendations, ``>= 1``.
    min_confidence:
        Rules below this confidence are ignored.  Independent of the
        threshold used when mining.

    Returns
    -------
    Predictions
        Aggregated per item (mean confidence, mean lift, max relevance,
        number of supporting rules, first antecedent seen), sorted by
        relevance descending.
    """
    check_positive_int("top_n", top_n)
    check_fraction("min_confidence", min_confidence)

    purchased = set(purchased_items)
    by_item: dict[Item, _Candidates] = {}

    for rule in as_rules(rules):
        if rule.confidence < min_confidence or not purchased.issuperset(rule.antecedent):
            continue
        score = relevance_score(rule.confidence, rule.lift, rule.support)
        for item in rule.consequent:
            if item in purchased:
                continue
            entry = by_item.get(item)
            if entry is None:
                entry = by_item[item] = _Candidates(rule.antecedent)
            entry.confidences.append(rule.confidence)
            entry.lifts.append(rule.lift)
            entry.best = max(entry.best, score)

    if not by_item:
        logger.debug("No rule matched a history of %d items", len(purchased))
        return Predictions()

    ranked = sorted(
        (
            Recommendation(
                item=item,
                confidence=sum(entry.confidences) / len(entry.confidences),
                lift=sum(entry.lifts) / len(entry.lifts),
                relevance=entry.best,
                supporting_rules=len(entry.confidences),
                example_antecedent=entry.antecedent,
            )
            for item, entry in by_item.items()
        ),
        key=lambda r: r.relevance,
        reverse=True,
    )
    return Predictions(ranked[:top_n])


class Recommender:
    """Cart recommender on top of a fixed rule list.

    Parameters
    ----------
    rules:
        Association rules as a list or as the DataFrame produced by
        :func:`basketmine.rules_to_frame`.
    """

    def __init__(self, rules: Sequence[AssociationRule] | pd.DataFrame | None = None) -> None:
        self.rules: list[AssociationRule] | None = None if rules is None else as_rules(rules)

    def _check_rules(self) -> list[AssociationRule]:
        if self.rules is None:
            raise ValueError("Association rules are not provided to the Recommender.")
        return self.rules

    def predict(self, purchased_items: Iterable[Item], top_n: int = 5, min_confidence: float = 0.1) -> Predictions:
        return predict(self._check_rules(), purchased_items, top_n=top_n, min_confidence=min_confidence)

    def recommend_for_cart(self, cart_items: Iterable[Item], n: int = 5, min_confidence: float = 0.1) -> list[Any]:
        """Suggest items to add to an active cart, best first."""
        return self.predict(cart_items, top_n=n, min_confidence=min_confidence).items

    def __repr__(self) -> str:
        n = "None" if self.rules is None else len(self.rules)
        return f"Recommender(rules={n})"
