"""End-to-end tests for MarketBasketAnalysis."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from basketmine import AnalysisResult, MarketBasketAnalysis
from basketmine.popularity import adaptive_coefficient, build_popularity_index


@pytest.fixture
def fitted(abc_df: pd.DataFrame) -> MarketBasketAnalysis:
    return MarketBasketAnalysis(min_support=0.5, min_confidence=0.5, max_size=2).fit(abc_df)


@pytest.fixture
def orders() -> pd.DataFrame:
    # same baskets as abc_df, in long format
    return pd.DataFrame(
        {
            "customer": ["c1", "c1", "c2", "c2", "c2", "c3", "c4", "c4"],
            "book": ["A", "B", "A", "B", "C", "A", "B", "C"],
        }
    )


def test_pipeline(fitted: MarketBasketAnalysis) -> None:
    result = fitted.result_
    assert isinstance(result, AnalysisResult)
    assert result.itemsets == [("A",), ("B",), ("C",), ("A", "B"), ("B", "C")]
    assert result.supports[("A", "B")] == pytest.approx(0.5)
    assert result.coefficient == pytest.approx(10 / 27)
    assert result.popularity_index == pytest.approx({"A": 0.75, "B": 0.75, "C": 0.5})

    sides = [(r.antecedent, r.consequent) for r in fitted.rules_]
    assert sides == [(("B",), ("C",)), (("C",), ("B",)), (("A",), ("B",)), (("B",), ("A",))]
    lifts = [r.lift for r in fitted.rules_]
    assert lifts == pytest.approx([72 / 79, 72 / 79, 4 / 7, 4 / 7])
    assert lifts == sorted(lifts, reverse=True)
    # confidence and support are not touched by the correction
    assert fitted.rules_[2].confidence == pytest.approx(2 / 3)
    assert fitted.rules_[2].support == pytest.approx(0.5)


def test_meta(fitted: MarketBasketAnalysis) -> None:
    assert fitted.result_.meta == {
        "itemsets_count": 5,
        "rules_count": 4,
        "min_support": 0.5,
        "min_confidence": 0.5,
        "max_size": 2,
        "n_transactions": 4,
    }


def test_frames(fitted: MarketBasketAnalysis) -> None:
    freq = fitted.result_.freq_itemsets
    assert list(freq.columns) == ["support", "itemsets"]
    assert freq.attrs["num_itemsets"] == 4
    rules = fitted.association_rules_
    assert list(rules.columns) == ["antecedents", "consequents", "support", "confidence", "lift"]
    assert len(rules) == 4


def test_predict(fitted: MarketBasketAnalysis) -> None:
    preds = fitted.predict(["A"], top_n=5)
    assert preds.items == ["B"]
    assert preds[0].lift == pytest.approx(4 / 7)
    assert preds[0].relevance == pytest.approx(0.8 * 2 / 3 + 0.2 * 4 / 7 + np.sqrt(0.5))


def test_predict_no_match(fitted: MarketBasketAnalysis) -> None:
    assert fitted.predict(["Z"]).label == "Next item predictions (no matches found)"


def test_recommend_for_cart(fitted: MarketBasketAnalysis) -> None:
    assert fitted.recommend_for_cart(["B"]) == ["C", "A"]
    assert fitted.recommend_for_cart(["B"], n=1) == ["C"]


def test_format_results(fitted: MarketBasketAnalysis) -> None:
    out = fitted.format_results(top_n=2)

    table = out["rules_table"]
    assert list(table.columns) == ["antecedent_str", "consequent_str", "support", "confidence", "lift"]
    assert table["antecedent_str"].tolist() == ["B", "C", "A", "B"]

    grouped = out["rules_grouped"]
    assert list(grouped) == ["B", "C", "A"]
    assert grouped["B"]["consequent_str"].tolist() == ["C", "A"]
    assert "antecedent_str" not in grouped["B"].columns

    assert out["top_rules"] == fitted.rules_[:2]
    assert out["summary"] == {"itemsets": 5, "rules": 4, "min_support": 0.5, "min_confidence": 0.5}


def test_format_results_joins_multi_item_sides(grocery_df: pd.DataFrame) -> None:
    model = MarketBasketAnalysis(min_support=0.6, min_confidence=0.8, max_size=3).fit(grocery_df)
    table = model.format_results()["rules_table"]
    labels = set(zip(table["antecedent_str"], table["consequent_str"]))
    assert ("Onion", "Eggs + Kidney Beans") in labels
    assert ("Eggs + Onion", "Kidney Beans") in labels


def test_coefficient_matches_helper(grocery_df: pd.DataFrame) -> None:
    from basketmine import apriori, generate_rules

    model = MarketBasketAnalysis(min_support=0.6, min_confidence=0.8, max_size=3).fit(grocery_df)
    raw = generate_rules(grocery_df, apriori(grocery_df, min_support=0.6, max_size=3), min_confidence=0.8)
    assert len(model.rules_) == len(raw) == 9
    assert model.result_.coefficient == pytest.approx(adaptive_coefficient(raw, build_popularity_index(grocery_df)))


def test_from_transactions(orders: pd.DataFrame, fitted: MarketBasketAnalysis) -> None:
    model = MarketBasketAnalysis.from_transactions(
        orders, transaction_col="customer", item_col="book", min_support=0.5, min_confidence=0.5, max_size=2
    )
    assert repr(model).endswith("fitted=False)")
    model.fit()
    assert model.rules_ == fitted.rules_
    assert model.itemsets_ == fitted.itemsets_


def test_from_pandas_alias(orders: pd.DataFrame) -> None:
    model = MarketBasketAnalysis.from_pandas(orders, min_support=0.5, min_confidence=0.5, max_size=2).fit()
    assert model.result_.meta["n_transactions"] == 4


def test_from_list_of_baskets() -> None:
    baskets = [["A", "B"], ["A", "B", "C"], ["A"], ["B", "C"]]
    model = MarketBasketAnalysis.from_transactions(baskets, min_support=0.5, min_confidence=0.5, max_size=2).fit()
    assert len(model.rules_) == 4


def test_subset_size(abc_df: pd.DataFrame) -> None:
    model = MarketBasketAnalysis(min_support=0.5, min_confidence=0.5, max_size=2).fit(abc_df, subset_size=2)
    # only {A,B} and {A,B,C} remain
    assert model.result_.meta["n_transactions"] == 2
    assert ("A", "B", "C") not in model.itemsets_
    assert ("A", "C") in model.itemsets_


def test_numpy_input_with_item_names() -> None:
    arr = np.array([[1, 1, 0], [1, 1, 1], [1, 0, 0], [0, 1, 1]], dtype=bool)
    model = MarketBasketAnalysis(min_support=0.5, min_confidence=0.5, max_size=2).fit(arr, item_names=["A", "B", "C"])
    assert model.recommend_for_cart(["C"]) == ["B"]


def test_empty_table(empty_df: pd.DataFrame) -> None:
    model = MarketBasketAnalysis(min_support=0.1).fit(empty_df)
    assert model.itemsets_ == []
    assert model.rules_ == []
    assert model.result_.coefficient == 0.0
    assert model.predict(["A"]).matched is False
    out = model.format_results()
    assert out["rules_table"].empty
    assert out["rules_grouped"] == {}


def test_unfitted_raises() -> None:
    model = MarketBasketAnalysis()
    with pytest.raises(RuntimeError, match="not been fitted"):
        model.rules_
    with pytest.raises(RuntimeError):
        model.predict(["A"])
    with pytest.raises(RuntimeError):
        model.format_results()


def test_fit_without_data() -> None:
    with pytest.raises(ValueError, match="No data provided"):
        MarketBasketAnalysis().fit()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_support": 0.0},
        {"min_confidence": 0.0},
        {"min_confidence": 1.2},
        {"max_size": 0},
        {"n_jobs": 0},
    ],
)
def test_invalid_parameters(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        MarketBasketAnalysis(**kwargs)


def test_invalid_subset_size(abc_df: pd.DataFrame) -> None:
    with pytest.raises(ValueError, match="subset_size"):
        MarketBasketAnalysis(min_support=0.5).fit(abc_df, subset_size=0)


def test_logs_summary(abc_df: pd.DataFrame, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="basketmine.model"):
        MarketBasketAnalysis(min_support=0.5, min_confidence=0.5, max_size=2).fit(abc_df)
    assert "5 itemsets, 4 rules from 4 transactions" in caplog.text


def test_dir_hides_private(fitted: MarketBasketAnalysis) -> None:
    names = dir(fitted)
    assert "fit" in names
    assert not any(n.startswith("_") for n in names)


def test_empty_purchase_log() -> None:
    log = pd.DataFrame({"customer": [], "book": []})
    model = MarketBasketAnalysis.from_transactions(log, transaction_col="customer", item_col="book").fit()
    assert model.itemsets_ == []
    assert model.rules_ == []
    assert model.result_.popularity_index == {}
    assert model.result_.coefficient == 0.0
    assert model.result_.meta["n_transactions"] == 0
    assert not model.predict(["A"]).matched
    assert model.format_results()["rules_table"].empty


def test_empty_basket_list() -> None:
    model = MarketBasketAnalysis.from_transactions([], min_support=0.5).fit()
    assert model.itemsets_ == []
    assert model.recommend_for_cart(["A"]) == []


def test_from_transactions_subset_cuts_purchase_rows(orders: pd.DataFrame) -> None:
    # the first five rows are c1 {A, B} and c2 {A, B, C}
    model = MarketBasketAnalysis.from_transactions(
        orders, transaction_col="customer", item_col="book", subset_size=5, min_support=0.5, max_size=2
    ).fit()
    assert model.result_.meta["n_transactions"] == 2
    assert ("A", "C") in model.itemsets_


def test_from_transactions_subset_splits_a_basket(orders: pd.DataFrame) -> None:
    # rows 0-2 keep c1 {A, B} and only the first purchase of c2, {A}
    model = MarketBasketAnalysis.from_transactions(
        orders, transaction_col="customer", item_col="book", subset_size=3, min_support=0.5, max_size=2
    ).fit()
    assert model.result_.meta["n_transactions"] == 2
    assert model.itemsets_ == [("A",), ("B",), ("A", "B")]
    assert model.result_.supports[("B",)] == pytest.approx(0.5)
