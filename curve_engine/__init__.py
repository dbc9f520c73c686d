"""
Curve Calibration Engine

Modules:
- rates: interest rates tagged with a compounding convention
- contracts: bonds, forwards, composites and option contracts
- projection: contract -> cashflow stream, folded by projection kind
- quotes: observed prices and the convenience quote constructors
- models: model abstraction, constant curve, curve arithmetic
- splines / smith_wilson / nelson_siegel: curve variants
- short_rate: Vasicek, CIR, Hull-White, scenario simulation
- derivatives: closed-form option pricing rules
- fit: bootstrap, kernel and optimisation calibration
- valuation: discount/zero/forward/par/present_value as free functions
- portfolio / risk / scenarios: pandas analysis on top of a calibrated model
"""
import logging

from .errors import (
    CalibrationSingular,
    CurveEngineError,
    DomainViolation,
    FitDidNotConverge,
    InvalidFrequency,
    UnknownReferenceKey,
    UnsupportedInstrument,
)
from .rates import Continuous, Periodic, Rate, accumulation_factor, convert, discount_factor
from .config import DEFAULT_COMPOUNDING, BootstrapConfig, SimulationConfig
from .contracts import (
    Cap,
    Cashflow,
    CommonEquity,
    Composite,
    EuroCall,
    FixedBond,
    FloatingBond,
    Floor,
    Forward,
    Scaled,
    Swaption,
    ZCBOption,
    coupon_times,
    maturity,
)
from .models import NULL_MODEL, CompositeYield, Constant, ForwardStarting, Model, NullModel, Parameter, YieldModel
from .projection import (
    CashflowProjection,
    CumulativeProjection,
    PresentValueProjection,
    Projection,
    collect,
    project,
)
from .quotes import (
    CMTYield,
    ForwardYield,
    ForwardYields,
    OISYield,
    ParSwapYield,
    ParYield,
    Quote,
    ZCBPrice,
    ZCBYield,
)
from .splines import MonotoneConvex, SplineKind, ZeroRateCurve
from .smith_wilson import SmithWilson
from .nelson_siegel import NelsonSiegel, NelsonSiegelSvensson
from .short_rate import CoxIngersollRoss, HullWhite, RatePath, Vasicek, pv_mc, simulate
from .derivatives import BlackScholesMerton
from .fit import Bootstrap, GlobalOptimizer, LeastSquares, LocalOptimizer, Loss, fit
from .valuation import accumulation, discount, forward, par, present_value, pv, zero

logging.getLogger(__name__).addHandler(logging.NullHandler())
