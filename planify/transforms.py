import json
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce
from typing import Callable, Collection, Dict, Iterable, Optional, Sequence, Tuple

from planify.domain import (
    ZERO,
    Budget,
    BudgetCategory,
    Collaboration,
    Expense,
    ExpenseShare,
    Goal,
    Income,
    User,
)
from planify.errors import ValidationError
from planify.store import StoreRegistry

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value))


def _budget(raw: dict) -> Budget:
    categories = tuple(
        BudgetCategory(name=c["name"], limit=_money(c["limit"]), spent=_money(c.get("spent", 0)))
        for c in raw.get("categories", [])
    )
    return Budget(
        id=raw["id"],
        name=raw["name"],
        month=raw["month"],
        total_amount=_money(raw["total_amount"]),
        created_by=raw["created_by"],
        current_spent=_money(raw.get("current_spent", 0)),
        categories=categories,
    )


def _goal(raw: dict) -> Goal:
    return Goal(**{
        **raw,
        "target_amount": _money(raw["target_amount"]),
        "current_amount": _money(raw.get("current_amount", 0)),
    })


def _expense(raw: dict) -> Expense:
    shares = tuple(
        ExpenseShare(email=s["email"], amount=_money(s["amount"]))
        for s in raw.get("shared_with", [])
    )
    return Expense(**{
        **raw,
        "amount": _money(raw["amount"]),
        "paid_by": raw.get("paid_by") or raw["created_by"],
        "shared_with": shares,
    })


def _income(raw: dict) -> Income:
    return Income(**{**raw, "amount": _money(raw["amount"])})


def load_seed(path: str) -> Dict[str, Tuple]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {
        "users": tuple(User(**u) for u in data.get("users", [])),
        "budgets": tuple(_budget(b) for b in data.get("budgets", [])),
        "goals": tuple(_goal(g) for g in data.get("goals", [])),
        "expenses": tuple(_expense(e) for e in data.get("expenses", [])),
        "incomes": tuple(_income(i) for i in data.get("incomes", [])),
        "collaborations": tuple(Collaboration(**c) for c in data.get("collaborations", [])),
    }


async def seed_registry(registry: StoreRegistry, path: str) -> Dict[str, int]:
    """Load a seed document into the registry's stores, keeping its ids."""
    seed = load_seed(path)
    targets = {
        "users": registry.users,
        "budgets": registry.budgets,
        "goals": registry.goals,
        "expenses": registry.expenses,
        "incomes": registry.incomes,
        "collaborations": registry.collaborations,
    }
    counts = {}
    for key, store in targets.items():
        for row in seed[key]:
            await store.create(row.__dict__)
        counts[key] = len(seed[key])
    return counts


def month_of(date: str) -> str:
    return str(date)[:7]


def expenses_in_month(expenses: Iterable[Expense], month: str) -> Tuple[Expense, ...]:
    return tuple(filter(lambda e: month_of(e.date) == month, expenses))


def sum_amounts(items: Iterable) -> Decimal:
    return reduce(lambda acc, item: acc + item.amount, items, ZERO)


def recompute_categories(
    categories: Sequence[BudgetCategory], expenses: Sequence[Expense]
) -> Tuple[BudgetCategory, ...]:
    """Rebuild each line's ``spent`` from the expenses of its category, keeping order."""
    return tuple(
        BudgetCategory(
            name=c.name,
            limit=c.limit,
            spent=sum_amounts(e for e in expenses if e.category == c.name),
        )
        for c in categories
    )


def split_equally(amount: Decimal, collaborators: Sequence[str]) -> Tuple[ExpenseShare, ...]:
    """One share per collaborator; the payer keeps the remaining part."""
    if not collaborators:
        return ()
    share = (amount / (len(collaborators) + 1)).quantize(CENT, rounding=ROUND_HALF_UP)
    return tuple(ExpenseShare(email=email, amount=share) for email in collaborators)


LEDGER_KINDS = {"expense": Expense, "income": Income}

Predicate = Callable[[object], bool]


def by_kind(kind: str) -> Predicate:
    if kind == "all":
        return lambda item: True
    if kind not in LEDGER_KINDS:
        raise ValidationError(f"unknown ledger kind: {kind!r}")
    cls = LEDGER_KINDS[kind]

    def _filter(item) -> bool:
        return isinstance(item, cls)

    return _filter


def by_text(term: str) -> Predicate:
    """Case-insensitive match on title or category."""
    needle = term.lower()

    def _filter(item) -> bool:
        return needle in item.title.lower() or needle in (item.category or "").lower()

    return _filter


def by_category(category: str) -> Predicate:
    def _filter(item) -> bool:
        return item.category == category

    return _filter


def by_categories(categories: Collection[str]) -> Predicate:
    wanted = frozenset(categories)

    def _filter(item) -> bool:
        return item.category in wanted

    return _filter


def by_date_range(start: Optional[str] = None, end: Optional[str] = None) -> Predicate:
    # ISO dates compare correctly as strings
    def _filter(item) -> bool:
        if start is not None and item.date < start:
            return False
        if end is not None and item.date > end:
            return False
        return True

    return _filter


def by_amount_range(min: Optional[Decimal] = None, max: Optional[Decimal] = None) -> Predicate:
    def _filter(item) -> bool:
        if min is not None and item.amount < Decimal(str(min)):
            return False
        if max is not None and item.amount > Decimal(str(max)):
            return False
        return True

    return _filter


def by_period(period: str, today: Optional[date] = None) -> Predicate:
    """Items dated from the start of the current month or week. Weeks start on Sunday."""
    today = today or date.today()
    if period == "all":
        return lambda item: True
    if period == "this_month":
        start = today.replace(day=1)
    elif period == "this_week":
        start = today - timedelta(days=(today.weekday() + 1) % 7)
    else:
        raise ValidationError(f"unknown period: {period!r}")
    return by_date_range(start=start.isoformat())


def filter_ledger(items: Iterable, *preds: Predicate) -> Tuple:
    return tuple(item for item in items if all(p(item) for p in preds))
