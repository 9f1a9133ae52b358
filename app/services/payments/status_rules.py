"""Ordered status rules, compiled both to a row evaluator and to SQL.

A table is a list of ``StatusRule(status, conditions)`` checked first-match
plus a default. The SQL predicate for rule *i* is its own conditions ANDed
with the negation of every earlier rule, and the default is the negation of
all rules, so the generated predicates partition every row exactly the way
``evaluate`` does.

Conditions are null-safe on both sides: a missing value never satisfies a
condition in memory, and in SQL each comparison is guarded by
``IS NOT NULL`` so that ``NOT (...)`` never meets a three-valued ``NULL``.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import and_, false, not_, or_, true


def as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class StatusContext:
    today: date
    grace_days: int = 0

    @property
    def overdue_cutoff(self) -> date:
        return self.today - timedelta(days=self.grace_days)


def today(ctx: StatusContext) -> date:
    return ctx.today


def overdue_cutoff(ctx: StatusContext) -> date:
    return ctx.overdue_cutoff


Anchor = Callable[[StatusContext], date]


class Condition:
    field: str

    def value(self, record):
        return getattr(record, self.field, None)

    def column(self, model):
        return getattr(model, self.field)

    def evaluate(self, record, ctx: StatusContext) -> bool:
        raise NotImplementedError

    def clause(self, model, ctx: StatusContext):
        raise NotImplementedError


@dataclass(frozen=True)
class IsSet(Condition):
    field: str

    def evaluate(self, record, ctx):
        return self.value(record) is not None

    def clause(self, model, ctx):
        return self.column(model).is_not(None)


@dataclass(frozen=True)
class IsPositive(Condition):
    field: str

    def evaluate(self, record, ctx):
        value = self.value(record)
        return value is not None and value > 0

    def clause(self, model, ctx):
        column = self.column(model)
        return and_(column.is_not(None), column > 0)


@dataclass(frozen=True)
class DateBefore(Condition):
    field: str
    anchor: Anchor

    def evaluate(self, record, ctx):
        value = as_date(self.value(record))
        return value is not None and value < self.anchor(ctx)

    def clause(self, model, ctx):
        column = self.column(model)
        return and_(column.is_not(None), column < self.anchor(ctx))


@dataclass(frozen=True)
class DateOnOrBefore(Condition):
    field: str
    anchor: Anchor

    def evaluate(self, record, ctx):
        value = as_date(self.value(record))
        return value is not None and value <= self.anchor(ctx)

    def clause(self, model, ctx):
        column = self.column(model)
        return and_(column.is_not(None), column <= self.anchor(ctx))


@dataclass(frozen=True)
class StatusRule:
    status: enum.Enum
    conditions: tuple[Condition, ...]

    def matches(self, record, ctx: StatusContext) -> bool:
        return all(condition.evaluate(record, ctx) for condition in self.conditions)

    def clause(self, model, ctx: StatusContext):
        return and_(true(), *(condition.clause(model, ctx) for condition in self.conditions))


class StatusRuleTable:
    def __init__(self, model, rules: Sequence[StatusRule], default: enum.Enum) -> None:
        statuses = [rule.status for rule in rules] + [default]
        if len(set(statuses)) != len(statuses):
            raise ValueError("Each status may appear only once in a rule table")
        self.model = model
        self.rules = tuple(rules)
        self.default = default

    @property
    def statuses(self) -> list[enum.Enum]:
        return [rule.status for rule in self.rules] + [self.default]

    def evaluate(self, record, ctx: StatusContext) -> enum.Enum:
        for rule in self.rules:
            if rule.matches(record, ctx):
                return rule.status
        return self.default

    def clause(self, status: enum.Enum, ctx: StatusContext):
        earlier = []
        for rule in self.rules:
            current = rule.clause(self.model, ctx)
            if rule.status == status:
                return and_(current, *(not_(prior) for prior in earlier))
            earlier.append(current)
        if status == self.default:
            return and_(true(), *(not_(prior) for prior in earlier))
        raise ValueError(f"Unknown status: {status!r}")

    def clause_for_statuses(self, statuses: Iterable[enum.Enum], ctx: StatusContext):
        return or_(false(), *(self.clause(status, ctx) for status in statuses))
