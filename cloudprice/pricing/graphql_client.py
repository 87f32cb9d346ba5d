"""
Cloud pricing GraphQL API client.
Executes pricing queries with response caching keyed by query hash.
"""
from typing import Dict, Any, Optional
import json
import logging

import httpx

from cloudprice.core.config import Settings
from cloudprice.core.errors import ConfigurationError, PricingAPIError
from cloudprice.pricing.cache import PricingCache, InMemoryPricingCache, build_cache_key


logger = logging.getLogger(__name__)


class PricingGraphQLClient:
    """Client for querying the cloud pricing GraphQL service."""

    def __init__(
        self,
        settings: Settings,
        cache: Optional[PricingCache] = None,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Initialize pricing client.

        Args:
            settings: Application settings
            cache: Fetch cache (defaults to an in-memory cache)
            http_client: httpx client (created with the configured timeout if None)
        """
        self.settings = settings
        self.cache = cache if cache is not None else InMemoryPricingCache()
        self.http_client = http_client or httpx.Client(timeout=settings.http_timeout_seconds)

    def execute(self, query: str, ttl_seconds: Optional[int] = None) -> Dict[str, Any]:
        """
        Execute a GraphQL query, returning its "data" object.

        Args:
            query: GraphQL query text
            ttl_seconds: Cache TTL override (defaults to configured TTL)

        Returns:
            The response "data" mapping

        Raises:
            ConfigurationError: If the API key is not configured
            PricingAPIError: If the request fails or the response is malformed
        """
        cache_key = build_cache_key(query, self.settings.cache_version)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("GraphQL: Returning cached response")
            return cached

        logger.info("GraphQL: Cache miss, fetching from API")
        if not self.settings.pricing_api_key:
            raise ConfigurationError(
                "Missing INFRACOST_API_KEY. Please set it in the environment."
            )

        try:
            response = self.http_client.post(
                self.settings.pricing_api_url,
                headers={
                    "X-Api-Key": self.settings.pricing_api_key,
                    "Content-Type": "application/json",
                },
                json={"query": query},
            )
            response.raise_for_status()
            payload = response.json()

        except httpx.HTTPStatusError as error:
            logger.error(f"Pricing API HTTP error: {error.response.status_code}")
            raise PricingAPIError(
                f"Failed to query pricing API: {error.response.status_code}"
            ) from error
        except httpx.RequestError as error:
            logger.error(f"Pricing API request error: {error}")
            raise PricingAPIError(f"Failed to connect to pricing API: {str(error)}") from error
        except (json.JSONDecodeError, ValueError) as error:
            logger.error(f"Error parsing pricing API response: {error}")
            raise PricingAPIError(f"Failed to parse pricing API response: {str(error)}") from error

        if not isinstance(payload, dict):
            raise PricingAPIError("Pricing API response is not a JSON object")
        if payload.get("errors"):
            logger.error(f"GraphQL returned errors: {payload['errors']}")
            raise PricingAPIError(f"GraphQL API error: {json.dumps(payload['errors'])}")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise PricingAPIError("Pricing API response missing data field")

        self.cache.put(cache_key, data, ttl_seconds or self.settings.cache_ttl_seconds)
        return data

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.http_client.close()
