"""Popularity-bias correction of association-rule lift."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

import numpy as np

from .table import TransactionTable

if TYPE_CHECKING:
    from .association_rules import AssociationRule
    from .typing import Item, TableLike

logger = logging.getLogger(__name__)

# With both sides at the maximum popularity the penalty is 1 + median_lift / 2.
MEDIAN_LIFT_SHARE = 0.5
POPULARITY_SCALE = 2.0


def build_popularity_index(data: TableLike) -> dict[Item, float]:
    """Map every item to its individual support.

    Parameters
    ----------
    data:
        One-hot transaction table.

    Returns
    -------
    dict
        ``{item: support}`` for every column, in column order.
    """
    table = TransactionTable.from_data(data)
    return {item: float(s) for item, s in zip(table.items, table.item_supports(), strict=True)}


def adaptive_coefficient(rules: Sequence[AssociationRule], popularity_index: Mapping[Item, float]) -> float:
    """Dampening coefficient ``(0.5 * median lift) / (2 * max popularity)``.

    ``0.0`` when there are no rules (or no popular item), which leaves lift
    untouched.
    """
    if not rules or not popularity_index:
        return 0.0
    max_popularity = max(popularity_index.values())
    if max_popularity <= 0.0:
        return 0.0
    median_lift = float(np.median([r.lift for r in rules]))
    return (MEDIAN_LIFT_SHARE * median_lift) / (POPULARITY_SCALE * max_popularity)


def _mean_popularity(items: Iterable[Item], popularity_index: Mapping[Item, float]) -> float:
    values = [popularity_index[item] for item in items if item in popularity_index]
    if not values:
        return 0.0
    return float(np.mean(values))


def adjust_lift(
    rule: AssociationRule,
    popularity_index: Mapping[Item, float],
    coefficient: float,
) -> AssociationRule:
    """Return a copy of *rule* with lift divided by its popularity penalty.

    ``penalty = 1 + coefficient * (mean_pop(antecedent) + mean_pop(consequent))``
    """
    penalty = 1.0 + coefficient * (
        _mean_popularity(rule.antecedent, popularity_index) + _mean_popularity(rule.consequent, popularity_index)
    )
    return dataclasses.replace(rule, lift=rule.lift / penalty)


def correct(rules: Sequence[AssociationRule], popularity_index: Mapping[Item, float]) -> list[AssociationRule]:
    """Discount lift of rules dominated by generically popular items.

    Order, count and every field but ``lift`` are preserved; the input rules
    are left untouched.
    """
    rules = list(rules)
    coefficient = adaptive_coefficient(rules, popularity_index)
    logger.debug("Correcting %d rules with adaptive coefficient %.6f", len(rules), coefficient)
    return [adjust_lift(rule, popularity_index, coefficient) for rule in rules]
