"""
Projection: turn a contract into a lazy stream of cashflows.

A projection rule is a generator registered on ``project`` for one contract
type; it yields Cashflows in non-decreasing time order. New contract types
plug in with ``@project.register`` and never touch existing rules.

What the stream is folded into is chosen by the projection *kind*:

    kind.records(cashflows)   -> records handed to the fold (default: as is)
    kind.initial()            -> starting accumulator
    kind.step(acc, record)    -> next accumulator
    kind.complete(acc)        -> final result
"""
from __future__ import annotations

import itertools
from collections.abc import Mapping
from functools import singledispatch
from typing import Iterable, Iterator, NamedTuple

from .contracts import Cashflow, Composite, Contract, FixedBond, FloatingBond, Forward, Scaled, coupon_times
from .errors import UnknownReferenceKey, UnsupportedInstrument
from .models import NULL_MODEL, ForwardStarting, NullModel


# ---- projection rules ----

@singledispatch
def project(contract, model) -> Iterator[Cashflow]:
    raise UnsupportedInstrument(f"No projection rule for {type(contract).__name__}.")


@project.register
def _(contract: Cashflow, model) -> Iterator[Cashflow]:
    yield contract


@project.register
def _(contract: FixedBond, model) -> Iterator[Cashflow]:
    f = contract.frequency.frequency
    coupon = contract.coupon_rate / f
    times = coupon_times(contract.maturity, f)
    for t in times[:-1]:
        yield Cashflow(coupon, t)
    yield Cashflow(1.0 + coupon, times[-1])


def _reference_curve(model, key):
    if not isinstance(model, Mapping):
        raise UnknownReferenceKey(
            f"Floating leg needs a mapping of curves to look up {key!r}, got {type(model).__name__}."
        )
    try:
        return model[key]
    except KeyError:
        raise UnknownReferenceKey(f"No curve registered under reference key {key!r}.") from None


@project.register
def _(contract: FloatingBond, model) -> Iterator[Cashflow]:
    curve = _reference_curve(model, contract.reference_key)
    freq = contract.frequency
    f = freq.frequency
    times = coupon_times(contract.maturity, f)
    dt = min(1.0 / f, contract.maturity)
    for i, t in enumerate(times):
        start = max(t - dt, 0.0)
        fwd = curve.forward(start, t, freq).value
        amount = (fwd + contract.spread) / f
        if i == len(times) - 1:
            amount += 1.0
        yield Cashflow(amount, t)


def _forward_starting(model, start: float):
    if isinstance(model, NullModel) or start == 0:
        return model
    if isinstance(model, Mapping):
        return {k: ForwardStarting(v, start) for k, v in model.items()}
    return ForwardStarting(model, start)


@project.register
def _(contract: Forward, model) -> Iterator[Cashflow]:
    inner_model = _forward_starting(model, contract.start_time)
    for cf in project(contract.inner, inner_model):
        yield cf.shifted(contract.start_time)


@project.register
def _(contract: Composite, model) -> Iterator[Cashflow]:
    return itertools.chain(project(contract.leg1, model), project(contract.leg2, model))


@project.register
def _(contract: Scaled, model) -> Iterator[Cashflow]:
    for cf in project(contract.contract, model):
        yield cf.scaled(contract.factor)


# ---- projection kinds ----

class ProjectionKind:
    """Fold protocol; subclasses override what they need."""

    def records(self, cashflows: Iterable[Cashflow]) -> Iterable:
        return cashflows

    def initial(self):
        raise NotImplementedError

    def step(self, acc, record):
        raise NotImplementedError

    def complete(self, acc):
        return acc


class CashflowProjection(ProjectionKind):
    """Collect the cashflows into a list."""

    def initial(self) -> list:
        return []

    def step(self, acc: list, record) -> list:
        acc.append(record)
        return acc


class CumulativeRecord(NamedTuple):
    time: float
    amount: float
    cumulative: float


class CumulativeProjection(CashflowProjection):
    """Schedule view: each row carries the running undiscounted total."""

    def records(self, cashflows: Iterable[Cashflow]) -> Iterator[CumulativeRecord]:
        total = 0.0
        for cf in cashflows:
            total += cf.amount
            yield CumulativeRecord(cf.time, cf.amount, total)


class PresentValueProjection(ProjectionKind):
    """
    Fold the stream straight into a discounted sum.

    Cashflows before ``cur_time`` are dropped; the rest are discounted back
    to ``cur_time`` with ``model``.
    """

    def __init__(self, model, cur_time: float = 0.0):
        self.model = model
        self.cur_time = cur_time

    def records(self, cashflows: Iterable[Cashflow]) -> Iterator[Cashflow]:
        return (cf for cf in cashflows if cf.time >= self.cur_time)

    def initial(self) -> float:
        return 0.0

    def step(self, acc: float, record: Cashflow) -> float:
        return acc + self.model.discount(self.cur_time, record.time) * record.amount


class Projection:
    """
    A contract viewed through a model and a projection kind.

    Iterating yields the kind's records lazily; every iteration restarts the
    projection from scratch. ``collect`` drains it through the fold.
    """

    def __init__(self, contract: Contract, model=NULL_MODEL, kind: ProjectionKind | None = None):
        self.contract = contract
        self.model = model
        self.kind = kind if kind is not None else CashflowProjection()

    def __iter__(self):
        return iter(self.kind.records(project(self.contract, self.model)))

    def collect(self):
        kind = self.kind
        acc = kind.initial()
        for record in self:
            acc = kind.step(acc, record)
        return kind.complete(acc)

    def __repr__(self) -> str:
        return f"Projection({self.contract!r}, {type(self.model).__name__}, {type(self.kind).__name__})"


def collect(projection: Projection):
    return projection.collect()
