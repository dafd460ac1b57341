"""
Cart analytics schemas
"""

from pydantic import BaseModel
from typing import List


class ProductPopularity(BaseModel):
    product_id: str
    name: str
    saved_count: int


class CartAnalytics(BaseModel):
    """Summary statistics derived from current service state"""
    total_snapshots: int
    active_snapshots: int
    average_snapshot_value: float
    average_line_count: float
    average_item_quantity: float
    active_share_grants: int
    abandoned_carts: int
    recovered_carts: int
    recovery_rate: float
    active_price_watches: int
    top_products: List[ProductPopularity]
