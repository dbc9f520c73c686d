"""
Error taxonomy for the engine.

Every error also derives from the closest builtin so callers that already
catch ``ValueError``/``KeyError``/... keep working.
"""
from __future__ import annotations


class CurveEngineError(Exception):
    """Base class for all engine errors."""


class InvalidFrequency(CurveEngineError, ValueError):
    """Compounding frequency is not a positive integer (or continuous)."""


class UnknownReferenceKey(CurveEngineError, KeyError):
    """A floating contract references a curve that is not in the model mapping."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""


class UnsupportedInstrument(CurveEngineError, TypeError):
    """No projection or pricing rule exists for this model/contract pairing."""


class CalibrationSingular(CurveEngineError, ArithmeticError):
    """A closed-form calibration produced a (numerically) singular system."""


class FitDidNotConverge(CurveEngineError, RuntimeError):
    """The optimizer or root search exhausted its budget without a solution."""


class DomainViolation(CurveEngineError, ValueError):
    """Model or curve parameters outside their valid domain."""
