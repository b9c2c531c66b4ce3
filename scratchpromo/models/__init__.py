from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .order import Order, OrderState  # noqa: F401
from .prize_count import PrizeCount  # noqa: F401

__all__ = [
    "Base",
    "Order",
    "OrderState",
    "PrizeCount",
]
