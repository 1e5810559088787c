"""Display statistics over budgets, goals, expenses and incomes.

These are presentation numbers (floats rounded to cents), computed with
pandas. Ledger aggregates that are written back to budgets live in
``planify.budgets`` and stay in ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Sequence

import pandas as pd

LEDGER_COLUMNS = ("id", "title", "amount", "category", "date", "created_by")


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    condition: Callable[[Dict[str, Any]], bool]


ACHIEVEMENTS = (
    Achievement("first_budget", "First Budget", "You created your first budget",
                lambda s: s["total_budgets"] > 0),
    Achievement("saver", "Saver", "You set your first savings goal",
                lambda s: s["total_goals"] > 0),
    Achievement("organized", "Organized", "You recorded more than 10 expenses",
                lambda s: s["total_expenses"] > 10),
    Achievement("goal_achiever", "Goal Achieved", "You completed your first goal",
                lambda s: s["goals_completed"] > 0),
)


def _unwrap(items: Iterable[Any]) -> List[Any]:
    """Accept plain entities or ``EntityAccess`` rows."""
    return [getattr(item, "entity", item) for item in items]


def entities_frame(entities: Iterable[Any], columns: Sequence[str], money: Sequence[str] = ()) -> pd.DataFrame:
    rows = [{c: getattr(e, c, None) for c in columns} for e in _unwrap(entities)]
    df = pd.DataFrame(rows, columns=list(columns))
    for col in money:
        df[col] = df[col].astype(float)
    return df


def ledger_frame(items: Iterable[Any]) -> pd.DataFrame:
    df = entities_frame(items, LEDGER_COLUMNS, money=("amount",))
    df["month"] = df["date"].astype(str).str[:7]
    return df


def previous_month(month: str) -> str:
    return (pd.Period(month, freq="M") - 1).strftime("%Y-%m")


def _total(df: pd.DataFrame, column: str = "amount") -> float:
    return round(float(df[column].sum()), 2) if not df.empty else 0.0


def expense_stats(expenses: Iterable[Any], month: str) -> Dict[str, Any]:
    df = ledger_frame(expenses)
    this_month = df[df["month"] == month]
    last_month = df[df["month"] == previous_month(month)]

    this_total = _total(this_month)
    last_total = _total(last_month)
    change = (this_total - last_total) / last_total * 100 if last_total > 0 else 0.0

    by_category = this_month.groupby("category")["amount"].sum()
    top_category = by_category.idxmax() if not by_category.empty else None

    return {
        "month": month,
        "this_month_total": this_total,
        "last_month_total": last_total,
        "monthly_change": round(change, 1),
        "top_category": top_category,
        "count": len(this_month),
    }


def balance_stats(incomes: Iterable[Any], expenses: Iterable[Any], month: str) -> Dict[str, Any]:
    inc = ledger_frame(incomes)
    exp = ledger_frame(expenses)
    total_income = _total(inc[inc["month"] == month])
    total_expenses = _total(exp[exp["month"] == month])
    net = round(total_income - total_expenses, 2)
    return {
        "month": month,
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_balance": net,
        "savings": net if net > 0 else 0.0,
    }


def dashboard_totals(budgets: Iterable[Any], goals: Iterable[Any]) -> Dict[str, float]:
    b = entities_frame(budgets, ("id", "total_amount", "current_spent"),
                       money=("total_amount", "current_spent"))
    g = entities_frame(goals, ("id", "target_amount", "current_amount"),
                       money=("target_amount", "current_amount"))
    return {
        "total_budget": _total(b, "total_amount"),
        "total_spent": _total(b, "current_spent"),
        "total_goal_target": _total(g, "target_amount"),
        "total_goal_progress": _total(g, "current_amount"),
    }


def profile_stats(budgets: Sequence[Any], goals: Sequence[Any], expenses: Sequence[Any], month: str) -> Dict[str, Any]:
    g = entities_frame(goals, ("id", "target_amount", "current_amount"),
                       money=("target_amount", "current_amount"))
    exp = ledger_frame(expenses)
    return {
        "total_budgets": len(budgets),
        "total_goals": len(goals),
        "total_expenses": len(expenses),
        "monthly_spent": _total(exp[exp["month"] == month]),
        "goals_completed": int((g["current_amount"] >= g["target_amount"]).sum()) if not g.empty else 0,
    }


def unlocked_achievements(stats: Dict[str, Any]) -> List[Achievement]:
    return [a for a in ACHIEVEMENTS if a.condition(stats)]
