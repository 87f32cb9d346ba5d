"""
Managed-database catalog API client.
Uses the public web API (no authentication required).
"""
from typing import Any, Dict, List, Optional, Sequence
import json
import logging

import httpx

from cloudprice.core.config import Settings
from cloudprice.core.errors import CatalogAPIError


logger = logging.getLogger(__name__)


class CatalogClient:
    """Client for the managed-database region/cluster/gateway catalog."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.Client] = None):
        """
        Initialize catalog client.

        Args:
            settings: Application settings
            http_client: httpx client (created with the configured timeout if None)
        """
        self.base_url = settings.catalog_api_url.rstrip("/") + "/"
        self.http_client = http_client or httpx.Client(timeout=settings.http_timeout_seconds)

    def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.http_client.get(url, params=params)
        except httpx.RequestError as error:
            raise CatalogAPIError(f"Unable to load the URL: {url} ({error})") from error
        if response.status_code != 200:
            raise CatalogAPIError(f"Unable to load the URL: {url} (status: {response.status_code})")
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as error:
            raise CatalogAPIError(f"Unable to parse response from {url}") from error

    def fetch_regions(self) -> List[Dict[str, Any]]:
        """
        Fetch all managed-database regions.

        Returns:
            List of region records ({slug, display_name, provider, ...})

        Raises:
            CatalogAPIError: If the regions cannot be retrieved or the list is empty
        """
        try:
            regions = self._get_json("regions").get("data", [])
        except (CatalogAPIError, AttributeError) as error:
            raise CatalogAPIError(f"Failed to retrieve regions. {error}") from error

        if not regions:
            raise CatalogAPIError("No results returned by the managed-database API.")
        return regions

    def fetch_cluster_skus(self, region: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Fetch the cluster-size catalog, optionally filtered by region slug.

        Raises:
            CatalogAPIError: If the catalog cannot be retrieved
        """
        params = {"region": region} if region else None
        try:
            skus = self._get_json("cluster-size-skus", params)
        except CatalogAPIError as error:
            raise CatalogAPIError(f"Failed to retrieve cluster size skus. {error}") from error
        if not isinstance(skus, list):
            raise CatalogAPIError("Failed to retrieve cluster size skus. Unexpected payload.")
        return skus

    def fetch_gateway_skus(self, names: Sequence[str] = ()) -> List[Dict[str, Any]]:
        """
        Fetch gateway (vtgate) SKUs, optionally restricted to the given names.

        Raises:
            CatalogAPIError: If the catalog cannot be retrieved
        """
        try:
            skus = self._get_json("vtgate-size-skus")
        except CatalogAPIError as error:
            raise CatalogAPIError(f"Failed to retrieve vtgates sku info. {error}") from error
        if not isinstance(skus, list):
            raise CatalogAPIError("Failed to retrieve vtgates sku info. Unexpected payload.")
        return [sku for sku in skus if not names or sku.get("name") in names]

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.http_client.close()
