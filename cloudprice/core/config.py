"""
Configuration module for loading environment variables.
Settings are read once at startup and passed to every component that needs them.
"""
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from cloudprice.core.errors import ConfigurationError


DEFAULT_MANAGED_PRICES: Mapping[str, float] = MappingProxyType({
    "memory": 30.66,
    "compute": 20.44,
    "general": 22.63,
    "metal": 30.66,
    "TB": 100.0,
})


def _split_list(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma separated environment value into a tuple of trimmed items."""
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Upstream pricing GraphQL service
    pricing_api_key: str = ""
    pricing_api_url: str = "https://pricing.api.infracost.io/graphql"

    # Managed-database web API
    catalog_api_url: str = "https://api.planetscale.com/www/"

    # Pricing conventions
    hours_per_month: int = 730  # Standard assumption: 24/7 operation

    # Fetch cache
    cache_ttl_seconds: int = 86400  # 24 hours
    cache_version: str = "0"

    http_timeout_seconds: float = 30.0

    # These limit the number of instance types we query when no explicit list is given
    aws_ec2_family_filter: Tuple[str, ...] = ()
    aws_ec2_size_filter: Tuple[str, ...] = ()
    gcp_compute_family_filter: Tuple[str, ...] = ()
    gcp_compute_size_filter: Tuple[str, ...] = ()

    # Managed service fees (USD per vCPU-month, TB is per TB-month)
    managed_prices: Mapping[str, float] = field(default_factory=lambda: DEFAULT_MANAGED_PRICES)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance
        """
        env = os.environ if environ is None else environ
        return cls(
            pricing_api_key=env.get("INFRACOST_API_KEY", ""),
            pricing_api_url=env.get("PRICING_API_URL", cls.pricing_api_url),
            catalog_api_url=env.get("PSDB_WEB_API", cls.catalog_api_url),
            cache_ttl_seconds=int(env.get("PRICING_CACHE_TTL_SECONDS", "86400")),
            cache_version=env.get("PRICING_CACHE_VERSION", "0"),
            http_timeout_seconds=float(env.get("PRICING_HTTP_TIMEOUT", "30")),
            aws_ec2_family_filter=_split_list(env.get("AWS_EC2_INSTANCE_FAMILY_FILTER")),
            aws_ec2_size_filter=_split_list(env.get("AWS_EC2_INSTANCE_SIZE_FILTER")),
            gcp_compute_family_filter=_split_list(env.get("GCP_COMPUTE_INSTANCE_FAMILY_FILTER")),
            gcp_compute_size_filter=_split_list(env.get("GCP_COMPUTE_INSTANCE_SIZE_FILTER")),
        )

    def validate(self) -> None:
        """
        Validates that required configuration values are set.

        Raises:
            ConfigurationError: If any required configuration is missing or invalid.
        """
        if not self.pricing_api_key:
            raise ConfigurationError(
                "INFRACOST_API_KEY is required. Please set it in the environment."
            )
        required_filters = {
            "AWS_EC2_INSTANCE_FAMILY_FILTER": self.aws_ec2_family_filter,
            "AWS_EC2_INSTANCE_SIZE_FILTER": self.aws_ec2_size_filter,
            "GCP_COMPUTE_INSTANCE_FAMILY_FILTER": self.gcp_compute_family_filter,
            "GCP_COMPUTE_INSTANCE_SIZE_FILTER": self.gcp_compute_size_filter,
        }
        missing = [name for name, value in required_filters.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing required instance filter settings: {', '.join(missing)}"
            )
        if self.cache_ttl_seconds <= 0:
            raise ConfigurationError(
                f"PRICING_CACHE_TTL_SECONDS must be positive (got: {self.cache_ttl_seconds})"
            )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from the environment."""
    return Settings.from_env(environ)
