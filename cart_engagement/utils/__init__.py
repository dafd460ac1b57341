"""Utilities package"""

from .helpers import utcnow, generate_id, round_money

__all__ = [
    "utcnow",
    "generate_id",
    "round_money",
]
