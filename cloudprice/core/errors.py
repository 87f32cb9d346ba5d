"""
Error taxonomy for pricing lookups.

Callers branch on these types: an upstream outage (UpstreamError) is distinct
from a valid request that simply has no price (NoPriceAvailableError).
"""
from typing import Any, Iterable, List, Optional


class PricingError(Exception):
    """Base class for all pricing errors."""
    pass


class ConfigurationError(PricingError):
    """Raised when a required setting or credential is missing."""
    pass


class OptionValidationError(PricingError):
    """Raised when a provider/product/purchase-option combination is not supported."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        accepted: Optional[Iterable[str]] = None
    ):
        super().__init__(message)
        self.field = field
        self.value = value
        self.accepted: List[str] = sorted(accepted) if accepted is not None else []


class UpstreamError(PricingError):
    """Raised when an upstream pricing source fails or returns a malformed payload."""
    pass


class PricingAPIError(UpstreamError):
    """Raised when the GraphQL pricing service call fails."""
    pass


class CatalogAPIError(UpstreamError):
    """Raised when the managed-database web API call fails."""
    pass


class NoPriceAvailableError(PricingError):
    """Raised when the request is valid but no pricing data satisfies it."""
    pass


class AmbiguousMatchError(PricingError):
    """Raised when a single-instance lookup matches more than one product."""
    pass
