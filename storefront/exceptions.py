"""
Exceptions raised by the storefront.

StorefrontException (base)
├── StoreError              data/auth/storage service failure
├── PayloadValidationError  admin payload failed schema checks
├── StorageError            local key-value store (cart, checkout contact)
└── CheckoutError           checkout preconditions not met

HTTP handlers translate these into `{"error": message}` responses; the cart
and catalog layers log them instead of propagating.
"""
from typing import Any, Dict, List, Optional


class StorefrontException(Exception):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ', '.join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class StoreError(StorefrontException):
    """The external data store, identity provider or object storage failed."""


class PayloadValidationError(StorefrontException):
    """Raised with every field issue collected, not just the first one."""

    def __init__(self, issues: List[Dict[str, str]]):
        self.issues = issues
        message = "; ".join(f"{i['field']}: {i['message']}" for i in issues) or "invalid payload"
        super().__init__(message, details={"issues": len(issues)})


class StorageError(StorefrontException):
    """The local persisted key-value store could not be read or written."""


class CheckoutError(StorefrontException):
    pass
