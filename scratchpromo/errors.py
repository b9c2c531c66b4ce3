"""Exception taxonomy for the promotion engine.

Every error carries a ``message`` suitable for showing to the customer or
the administrator, and a ``retryable`` flag telling the caller whether
re-submitting the same request can succeed.
"""

from __future__ import annotations

from typing import Optional


class PromotionError(Exception):
    """Base exception for all promotion engine errors."""

    retryable: bool = False
    default_message: str = "系統發生未知錯誤，請稍後再試。"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(PromotionError):
    """Raised when the campaign configuration is inconsistent."""

    default_message = "活動設定錯誤。"


class InvalidInput(PromotionError, ValueError):
    """Raised when a registration or admin request is malformed."""

    default_message = "請輸入有效的手機號碼 (格式: 09xxxxxxxx)"


class OrderNotFound(InvalidInput):
    """Raised when an order id does not reference an existing order."""

    default_message = "找不到此訂單。"


class DuplicateEntry(PromotionError):
    """Raised when the same phone already registered for the same date."""

    default_message = "此手機號碼今日已參加過抽獎，同一筆訂單不得重複參加！"


class StoreUnavailable(PromotionError):
    """Raised when the persistence layer is unreachable or refuses a write."""

    retryable = True
    default_message = "系統連線忙碌中，請稍後再試。"


class AdminAccessDenied(PromotionError):
    """Raised when the administrative passphrase does not match."""

    default_message = "密碼錯誤"


class UnknownError(PromotionError):
    """Wraps unexpected failures raised inside a unit of work."""


__all__ = [
    "AdminAccessDenied",
    "ConfigurationError",
    "DuplicateEntry",
    "InvalidInput",
    "OrderNotFound",
    "PromotionError",
    "StoreUnavailable",
    "UnknownError",
]
