"""
Valuation API as free functions over any model.

    discount(model, t) / discount(model, t_from, t_to)
    accumulation(model, t) / accumulation(model, t_from, t_to)
    zero(model, t, compounding=Continuous())
    forward(model, t1, t2=t1 + 1, compounding=Continuous())
    par(model, t, frequency=2)
    present_value(model, contract, cur_time=0, projection_models=None)
"""
from __future__ import annotations

from .config import DEFAULT_COMPOUNDING
from .contracts import Contract
from .models import Model, YieldModel
from .rates import Rate


def discount(model: YieldModel, t: float, to: float | None = None) -> float:
    return model.discount(t, to)


def accumulation(model: YieldModel, t: float, to: float | None = None) -> float:
    return model.accumulation(t, to)


def zero(model: YieldModel, t: float, compounding=DEFAULT_COMPOUNDING) -> Rate:
    return model.zero(t, compounding)


def forward(model: YieldModel, t1: float, t2: float | None = None, compounding=DEFAULT_COMPOUNDING) -> Rate:
    return model.forward(t1, t2, compounding)


def par(model: YieldModel, t: float, frequency=2) -> Rate:
    return model.par(t, frequency)


def present_value(model: Model, contract: Contract, cur_time: float = 0.0, projection_models=None) -> float:
    return model.present_value(contract, cur_time, projection_models)


pv = present_value
