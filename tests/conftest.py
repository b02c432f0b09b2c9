"""pytest configuration and shared fixtures."""

from __future__ import annotations

import os
import sys

import numpy as np
import pandas as pd
import pytest

# Ensure tests/ dir is on path so the shared suites in test_fpbase import
sys.path.insert(0, os.path.dirname(__file__))

# ---------------------------------------------------------------------------
# Grocery-style 5×11 dataset (same as mlxtend's frequent_patterns tests)
# ---------------------------------------------------------------------------

GROCERY_ARY = np.array(
    [
        [0, 0, 0, 1, 0, 1, 1, 1, 1, 0, 1],
        [0, 0, 1, 1, 0, 1, 0, 1, 1, 0, 1],
        [1, 0, 0, 1, 0, 1, 1, 0, 0, 0, 0],
        [0, 1, 0, 0, 0, 1, 1, 0, 0, 1, 1],
        [0, 1, 0, 1, 1, 1, 0, 0, 1, 0, 0],
    ]
)

GROCERY_COLS = [
    "Apple",
    "Corn",
    "Dill",
    "Eggs",
    "Ice cream",
    "Kidney Beans",
    "Milk",
    "Nutmeg",
    "Onion",
    "Unicorn",
    "Yogurt",
]


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: larger randomised tables",
    )


@pytest.fixture
def abc_df() -> pd.DataFrame:
    """Four baskets over A, B, C: {A,B}, {A,B,C}, {A}, {B,C}."""
    return pd.DataFrame(
        {
            "A": [True, True, True, False],
            "B": [True, True, False, True],
            "C": [False, True, False, True],
        }
    )


@pytest.fixture
def grocery_df() -> pd.DataFrame:
    return pd.DataFrame(GROCERY_ARY, columns=GROCERY_COLS).astype(bool)


@pytest.fixture
def empty_df() -> pd.DataFrame:
    """Zero baskets, three item columns."""
    return pd.DataFrame({"A": [], "B": [], "C": []}, dtype=bool)


@pytest.fixture
def random_df() -> pd.DataFrame:
    rng = np.random.default_rng(42)
    probs = np.linspace(0.15, 0.7, 9)
    data = rng.random((200, 9)) < probs
    return pd.DataFrame(data, columns=[f"item_{i}" for i in range(9)])
