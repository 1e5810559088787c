"""Configuration for the planify core.

Paths and the log level can be overridden from the environment. Alert
thresholds, category catalogues and validation limits are fixed constants.
"""

from __future__ import annotations

import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

DATA_DIR = Path(os.getenv("PLANIFY_DATA_DIR", _PROJECT_ROOT / "data"))
SEED_PATH = Path(os.getenv("PLANIFY_SEED_PATH", DATA_DIR / "seed.json")).resolve()

LOG_LEVEL = os.getenv("PLANIFY_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Budget alert thresholds, in percent of the budget (or category limit).
BUDGET_WARNING_PERCENT = Decimal("80")
BUDGET_EXCEEDED_PERCENT = Decimal("90")
CATEGORY_EXCEEDED_PERCENT = Decimal("90")

EXPENSE_CATEGORIES = (
    "Vivienda",
    "Comida",
    "Transporte",
    "Ocio",
    "Salud",
    "Compras",
    "Servicios",
    "Ahorros",
    "Otros",
)

INCOME_CATEGORIES = ("salary", "freelance", "investment", "bonus", "other")

GOAL_CATEGORIES = ("vacation", "emergency", "purchase", "investment", "other")

VALIDATION = {
    "budget": {"name": (1, 100), "amount": (Decimal("0.01"), Decimal("1000000"))},
    "goal": {"title": (1, 100), "amount": (Decimal("0.01"), Decimal("10000000"))},
    "expense": {"title": (1, 100), "amount": (Decimal("0.01"), Decimal("100000"))},
}

def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging for processes embedding the core."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
