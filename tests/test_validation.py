from decimal import Decimal

import pytest

from planify.errors import ValidationError
from planify.validation import (
    Left,
    Right,
    ensure_valid,
    validate_budget,
    validate_expense,
    validate_goal,
    validate_income,
    validate_month,
)


def test_right_map_and_bind():
    r = Right(5)
    assert r.map(lambda x: x * 2) == Right(10)
    assert r.bind(lambda x: Right(x + 1)) == Right(6)
    assert r.is_right() and not r.is_left()


def test_left_short_circuits():
    l = Left({"error": "boom"})
    assert l.map(lambda x: x * 2) is l
    assert l.bind(lambda x: Right(x)) is l
    assert l.is_left()
    assert repr(l) == "Left({'error': 'boom'})"


def test_validate_expense_cleans_fields():
    result = validate_expense({"title": "  Groceries ", "amount": "80.50", "category": "Comida", "date": "2024-05-03"})

    fields = ensure_valid(result)
    assert fields["title"] == "Groceries"
    assert fields["amount"] == Decimal("80.50")


@pytest.mark.parametrize("overrides, field", [
    ({"title": ""}, "title"),
    ({"amount": "-3"}, "amount"),
    ({"amount": "abc"}, "amount"),
    ({"amount": "NaN"}, "amount"),
    ({"amount": "200000"}, "amount"),
    ({"category": ""}, "category"),
    ({"date": "2024-13-01"}, "date"),
])
def test_validate_expense_rejects(overrides, field):
    fields = {"title": "Groceries", "amount": "10", "category": "Comida", "date": "2024-05-03"}
    fields.update(overrides)

    result = validate_expense(fields)

    assert result.is_left()
    assert result.error["field"] == field


def test_first_failure_wins():
    result = validate_expense({"title": "", "amount": "0", "category": "", "date": ""})
    assert result.error["field"] == "title"


def test_ensure_valid_raises_with_message():
    with pytest.raises(ValidationError, match="amount must be greater than zero"):
        ensure_valid(validate_income({"title": "Salary", "amount": 0, "category": "salary", "date": "2024-05-01"}))


def test_validate_budget_and_goal():
    assert validate_budget({"name": "May", "total_amount": "1000", "month": "2024-05"}).is_right()
    assert validate_budget({"name": "May", "total_amount": "1000", "month": "2024-5"}).error["field"] == "month"
    assert validate_goal({"title": "Trip", "target_amount": "2000", "deadline": "2024-08-01"}).is_right()
    assert validate_goal({"title": "Trip", "target_amount": "2000", "deadline": None}).is_left()


def test_validate_month():
    assert validate_month("2024-05") == Right("2024-05")
    assert validate_month("May 2024").is_left()


def test_categories_come_from_catalogues():
    assert validate_expense({"title": "x", "amount": "1", "category": "Crypto", "date": "2024-05-03"}).is_left()
    assert validate_income({"title": "x", "amount": "1", "category": "freelance", "date": "2024-05-03"}).is_right()

    goal = validate_goal({"title": "Trip", "target_amount": "2000", "deadline": "2024-08-01"})
    assert goal.value["category"] == "other"
    assert validate_goal({"title": "Trip", "target_amount": "2000", "deadline": "2024-08-01",
                          "category": "yacht"}).is_left()
