"""Price oracle consulted by the price alert sweep"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Optional

from cart_engagement.core.exceptions import NotFoundError

class PriceOracle(ABC):
    """Source of a product's current price"""
    
    @abstractmethod
    async def get_current_price(self, product_id: str) -> Decimal:
        """Current price; raises if the product cannot be priced"""

class CatalogPriceOracle(PriceOracle):
    """In-memory price table"""
    
    def __init__(self, prices: Optional[Dict[str, Decimal]] = None):
        self._prices: Dict[str, Decimal] = {
            product_id: Decimal(str(price))
            for product_id, price in (prices or {}).items()
        }
        
    def set_price(self, product_id: str, price) -> None:
        self._prices[product_id] = Decimal(str(price))
        
    async def get_current_price(self, product_id: str) -> Decimal:
        try:
            return self._prices[product_id]
        except KeyError:
            raise NotFoundError(f"No price for product {product_id}")
