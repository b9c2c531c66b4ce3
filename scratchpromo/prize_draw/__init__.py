"""Prize determination: weighted selection, inventory caps and grand-draw serials."""

from .grand_draw import GrandDrawAssigner, GrandDrawAssignment
from .inventory import InventoryDecision, InventoryGuard
from .selector import WeightedPrizeSelector

__all__ = [
    "GrandDrawAssigner",
    "GrandDrawAssignment",
    "InventoryDecision",
    "InventoryGuard",
    "WeightedPrizeSelector",
]
