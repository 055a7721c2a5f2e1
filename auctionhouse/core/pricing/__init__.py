"""Descending-price curves for Dutch auctions"""
from auctionhouse.core.pricing.decay import (
    DECAY_FACTOR_SCALE,
    DecayShape,
    PriceCurveParams,
    CurvePoint,
    DecayPreview,
    price_at,
)

__all__ = [
    "DECAY_FACTOR_SCALE",
    "DecayShape",
    "PriceCurveParams",
    "CurvePoint",
    "DecayPreview",
    "price_at",
]
