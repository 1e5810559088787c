"""Input checks run by callers before handing data to the core.

Each validator returns an ``Either``: ``Right(clean_fields)`` when the input
is usable, ``Left(error)`` with an error dict otherwise. ``ensure_valid``
unwraps a result or raises :class:`ValidationError`.
"""

import re
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Generic, Mapping, TypeVar

from planify.config import EXPENSE_CATEGORIES, GOAL_CATEGORIES, INCOME_CATEGORIES, VALIDATION
from planify.errors import ValidationError

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')

DATE_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")
MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self.value = value

    def map(self, f):
        return Right(f(self.value))

    def bind(self, f):
        return f(self.value)

    def is_right(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Right({self.value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self.value == other.value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self.error = error

    def map(self, f):
        return self

    def bind(self, f):
        return self

    def is_right(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"Left({self.error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self.error == other.error


def ensure_valid(result: Either) -> Any:
    if result.is_left():
        raise ValidationError(result.error["message"])
    return result.value


def _error(code: str, field: str, message: str) -> Left:
    return Left({"error": code, "field": field, "message": message})


def check_text(field: str, bounds=(1, 100)):
    low, high = bounds

    def _check(fields: dict) -> Either:
        value = str(fields.get(field) or "").strip()
        if not low <= len(value) <= high:
            return _error("invalid_length", field, f"{field} must be {low}-{high} characters")
        return Right({**fields, field: value})

    return _check


def check_amount(field: str = "amount", bounds=None):
    def _check(fields: dict) -> Either:
        try:
            value = Decimal(str(fields.get(field)))
        except InvalidOperation:
            return _error("invalid_amount", field, f"{field} is not a number")
        if not value.is_finite() or value <= 0:
            return _error("invalid_amount", field, f"{field} must be greater than zero")
        if bounds is not None and not bounds[0] <= value <= bounds[1]:
            return _error("amount_out_of_range", field, f"{field} must be between {bounds[0]} and {bounds[1]}")
        return Right({**fields, field: value})

    return _check


def check_pattern(field: str, pattern: re.Pattern, label: str):
    def _check(fields: dict) -> Either:
        value = fields.get(field)
        if not isinstance(value, str) or not pattern.match(value):
            return _error("invalid_format", field, f"{field} must be a {label}")
        return Right(fields)

    return _check


def check_choice(field: str, choices):
    def _check(fields: dict) -> Either:
        if fields.get(field) not in choices:
            return _error("invalid_choice", field, f"{field} must be one of: {', '.join(choices)}")
        return Right(fields)

    return _check


def validate_expense(fields: Mapping[str, Any]) -> Either:
    rules = VALIDATION["expense"]
    return (
        Right(dict(fields))
        .bind(check_text("title", rules["title"]))
        .bind(check_amount("amount", rules["amount"]))
        .bind(check_choice("category", EXPENSE_CATEGORIES))
        .bind(check_pattern("date", DATE_RE, "YYYY-MM-DD date"))
    )


def validate_income(fields: Mapping[str, Any]) -> Either:
    return (
        Right(dict(fields))
        .bind(check_text("title"))
        .bind(check_amount("amount"))
        .bind(check_choice("category", INCOME_CATEGORIES))
        .bind(check_pattern("date", DATE_RE, "YYYY-MM-DD date"))
    )


def validate_budget(fields: Mapping[str, Any]) -> Either:
    rules = VALIDATION["budget"]
    return (
        Right(dict(fields))
        .bind(check_text("name", rules["name"]))
        .bind(check_amount("total_amount", rules["amount"]))
        .bind(check_pattern("month", MONTH_RE, "YYYY-MM month"))
    )


def validate_goal(fields: Mapping[str, Any]) -> Either:
    rules = VALIDATION["goal"]
    return (
        Right(dict(fields))
        .bind(check_text("title", rules["title"]))
        .bind(check_amount("target_amount", rules["amount"]))
        .bind(check_pattern("deadline", DATE_RE, "YYYY-MM-DD date"))
        .map(lambda f: {"category": "other", **f})
        .bind(check_choice("category", GOAL_CATEGORIES))
    )


def validate_month(month: str) -> Either:
    return check_pattern("month", MONTH_RE, "YYYY-MM month")({"month": month}).map(lambda f: f["month"])
