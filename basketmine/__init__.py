"""basketmine – market-basket analysis: Apriori itemsets, association rules and next-item recommendations."""

from .apriori import Apriori, apriori, frequent_itemsets, join_itemsets
from .association_rules import AssociationRule, generate_rules, rules_from_frame, rules_to_frame
from .model import AnalysisResult, BaseModel, MarketBasketAnalysis
from .popularity import adaptive_coefficient, adjust_lift, build_popularity_index, correct
from .recommend import Predictions, Recommendation, Recommender, predict, relevance_score
from .table import SupportCounter, TransactionTable, canonical_order
from .transactions import from_transactions

__all__ = [
    "apriori",
    "Apriori",
    "frequent_itemsets",
    "join_itemsets",
    "generate_rules",
    "AssociationRule",
    "rules_to_frame",
    "rules_from_frame",
    "build_popularity_index",
    "adaptive_coefficient",
    "adjust_lift",
    "correct",
    "predict",
    "relevance_score",
    "Recommendation",
    "Predictions",
    "Recommender",
    "MarketBasketAnalysis",
    "AnalysisResult",
    "BaseModel",
    "TransactionTable",
    "SupportCounter",
    "canonical_order",
    "from_transactions",
]
