"""Scratch-card visit promotion engine."""

from .config import (
    CampaignConfig,
    DEFAULT_CAMPAIGN,
    InventoryPolicy,
    PrizeDefinition,
    PrizeKind,
    Settings,
    load_settings,
)
from .errors import (
    AdminAccessDenied,
    ConfigurationError,
    DuplicateEntry,
    InvalidInput,
    OrderNotFound,
    PromotionError,
    StoreUnavailable,
    UnknownError,
)
from .lifecycle import OrderLifecycle, RegistrationRequest, RegistrationResult
from .admin import AdminGate, AdminQueryAggregator
from .scratch import RevealState, ScratchRevealDetector

__all__ = [
    "AdminAccessDenied",
    "AdminGate",
    "AdminQueryAggregator",
    "CampaignConfig",
    "ConfigurationError",
    "DEFAULT_CAMPAIGN",
    "DuplicateEntry",
    "InvalidInput",
    "InventoryPolicy",
    "OrderLifecycle",
    "OrderNotFound",
    "PrizeDefinition",
    "PrizeKind",
    "PromotionError",
    "RegistrationRequest",
    "RegistrationResult",
    "RevealState",
    "ScratchRevealDetector",
    "Settings",
    "StoreUnavailable",
    "UnknownError",
    "load_settings",
]
