"""
Price Decay - time-parameterized asking price for descending-price auctions.

Three curve shapes share one contract: given the curve parameters and the
time elapsed since the auction started, return the instantaneous price.

    Linear:       p(t) = S - (S - R) * t / D
    Exponential:  p(t) = R + (S - R) * 2^(-k t)
    Logarithmic:  p(t) = S - (S - R) * log2(1 + k t) / log2(1 + k D)

S = start price, R = reserved price, D = duration, k = decay factor.

Every curve starts at S. Once t reaches D the price is clamped to R, and no
evaluation ever quotes below R. The same functions back live pricing and
the preview sampler.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, Optional

from auctionhouse.errors import ConfigurationError


# =============================================================================
# Constants
# =============================================================================

# Contracts store decay factors as fixed-point integers with 5 decimals
DECAY_FACTOR_SCALE = 10**5

DEFAULT_PREVIEW_STEPS = 50


class DecayShape(str, Enum):
    """Shape of a Dutch auction's price curve."""
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    LOGARITHMIC = "logarithmic"


# =============================================================================
# Curve Parameters
# =============================================================================


@dataclass(frozen=True)
class PriceCurveParams:
    """
    Static parameters of one decay curve.

    Validated at construction so evaluation never divides by zero or
    returns a negative price.
    """
    start_price: float
    reserved_price: float
    duration: float
    decay_factor: float = 0.0
    shape: DecayShape = DecayShape.LINEAR

    def __post_init__(self):
        object.__setattr__(self, "shape", DecayShape(self.shape))

        if self.duration <= 0:
            raise ConfigurationError(f"duration must be > 0, got {self.duration}")
        if self.reserved_price < 0:
            raise ConfigurationError(f"reserved price must be >= 0, got {self.reserved_price}")
        if self.reserved_price > self.start_price:
            raise ConfigurationError(
                f"reserved price {self.reserved_price} exceeds start price {self.start_price}"
            )
        if self.shape != DecayShape.LINEAR and not self.decay_factor > 0:
            raise ConfigurationError(
                f"{self.shape.value} decay requires decay_factor > 0, got {self.decay_factor}"
            )


# =============================================================================
# Shape Functions
# =============================================================================


def _linear(p: PriceCurveParams, t: float) -> float:
    return p.start_price - (p.start_price - p.reserved_price) * t / p.duration


def _exponential(p: PriceCurveParams, t: float) -> float:
    return p.reserved_price + (p.start_price - p.reserved_price) * math.pow(2.0, -p.decay_factor * t)


def _logarithmic(p: PriceCurveParams, t: float) -> float:
    ratio = math.log2(1 + p.decay_factor * t) / math.log2(1 + p.decay_factor * p.duration)
    return p.start_price - (p.start_price - p.reserved_price) * ratio


_SHAPES: Dict[DecayShape, Callable[[PriceCurveParams, float], float]] = {
    DecayShape.LINEAR: _linear,
    DecayShape.EXPONENTIAL: _exponential,
    DecayShape.LOGARITHMIC: _logarithmic,
}


def price_at(params: PriceCurveParams, elapsed: float) -> float:
    """
    Price after `elapsed` seconds.

    Before the start the price is the start price; at or after the
    duration it is the reserved price.
    """
    if elapsed <= 0:
        return float(params.start_price)
    if elapsed >= params.duration:
        return float(params.reserved_price)

    price = _SHAPES[params.shape](params, elapsed)
    return min(max(price, params.reserved_price), params.start_price)


# =============================================================================
# Preview Sampling
# =============================================================================


@dataclass(frozen=True)
class CurvePoint:
    """One sample of all three curves at the same instant."""
    time: float
    linear: Optional[float]
    exponential: Optional[float]
    logarithmic: Optional[float]


@dataclass(frozen=True)
class DecayPreview:
    """
    Evenly spaced samples of every curve shape over [0, duration].

    Iterating yields steps + 1 points and can be repeated. A shape whose
    parameters are invalid (e.g. decay_factor of 0 for the exponential
    curve) contributes None.
    """
    start_price: float
    reserved_price: float
    duration: float
    decay_factor: float = 0.0
    steps: int = DEFAULT_PREVIEW_STEPS

    def __post_init__(self):
        if self.steps < 1:
            raise ConfigurationError(f"steps must be >= 1, got {self.steps}")
        # Validates duration and the price bounds
        PriceCurveParams(self.start_price, self.reserved_price, self.duration)

    def _curve(self, shape: DecayShape) -> Optional[PriceCurveParams]:
        try:
            return PriceCurveParams(
                start_price=self.start_price,
                reserved_price=self.reserved_price,
                duration=self.duration,
                decay_factor=self.decay_factor,
                shape=shape,
            )
        except ConfigurationError:
            return None

    def __iter__(self) -> Iterator[CurvePoint]:
        curves = {shape: self._curve(shape) for shape in DecayShape}

        for i in range(self.steps + 1):
            t = self.duration * i / self.steps
            values = {
                shape: (price_at(curve, t) if curve is not None else None)
                for shape, curve in curves.items()
            }
            yield CurvePoint(
                time=t,
                linear=values[DecayShape.LINEAR],
                exponential=values[DecayShape.EXPONENTIAL],
                logarithmic=values[DecayShape.LOGARITHMIC],
            )

    def __len__(self) -> int:
        return self.steps + 1
