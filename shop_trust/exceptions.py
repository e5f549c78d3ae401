"""
Custom exception hierarchy for shop verification.

Each exception type maps to a category from the error taxonomy, so the
HTTP layer can translate them into status codes without string matching.
Provider failures are the exception: they are caught inside each step
and converted into conservative signals.
"""

from __future__ import annotations


class ShopTrustError(Exception):
    """Base exception for all shop verification failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidInputError(ShopTrustError):
    """Caller input is missing or malformed (coordinates, URLs, status)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ShopNotFoundError(ShopTrustError):
    """No shop exists with the requested identity."""

    def __init__(self, shop_id: str):
        super().__init__("SHOP_NOT_FOUND", f"Shop '{shop_id}' not found", {"shop_id": shop_id})


class InvalidTransitionError(ShopTrustError):
    """The shop's lifecycle state does not allow the requested action."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INVALID_TRANSITION", message, details)


class PersistenceError(ShopTrustError):
    """The shop store could not persist a write. Always fatal."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("PERSISTENCE_FAILED", message, details)


class ProviderDegradation(ShopTrustError):
    """An external provider failed or timed out.

    Raised by ``call_with_timeout`` and caught by the verification steps,
    which log it and fall back to a mismatch-leaning signal.
    """

    def __init__(self, provider: str, message: str, details: dict | None = None):
        self.provider = provider
        super().__init__("PROVIDER_DEGRADED", message, {"provider": provider, **(details or {})})
