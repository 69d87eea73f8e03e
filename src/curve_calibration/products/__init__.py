"""curve_calibration.products

Analytic products used as calibration instruments.

Each product exposes ``get_value(evaluation_time, model)`` and reads the
curves and surfaces it needs from the model by name. Products hold no state
besides their contract terms.
"""

from .base import AnalyticProduct
from .bonds import Deposit, DiscountBond
from .options import BlackCaplet, black76_price
from .rates import ForwardRateAgreement, Swap

__all__ = [
    "AnalyticProduct",
    "DiscountBond",
    "Deposit",
    "ForwardRateAgreement",
    "Swap",
    "BlackCaplet",
    "black76_price",
]
