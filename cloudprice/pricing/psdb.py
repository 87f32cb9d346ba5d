"""
Managed-database (PlanetScale) cluster adapter.

Cluster SKUs come pre-enumerated from the catalog. Each product is enriched
with the equivalent instance type of the cloud the region runs on.
"""
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging

from cloudprice.core.errors import CatalogAPIError, PricingAPIError
from cloudprice.domain.offerings import Offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import AdapterResult, InstanceClass, ManagedDbRates, Product
from cloudprice.pricing.base import ProductAdapter, parse_price
from cloudprice.pricing.catalog_client import CatalogClient
from cloudprice.services.instance_matcher import find_instance_match


logger = logging.getLogger(__name__)


BYTES_PER_GB = 1024 ** 3

# tshirt_size sub-code -> tier tag
TSHIRT_CLASSES: Dict[str, InstanceClass] = {
    "m1": InstanceClass.MEMORY,
    "g1": InstanceClass.GENERAL,
    "c1": InstanceClass.COMPUTE,
}

# (cloud provider, cloud region) -> cloud products in fetch order
CloudProductLookup = Callable[[str, str], List[Product]]


def classify_cluster_sku(sku: Dict[str, Any]) -> InstanceClass:
    """Metal flag first, else the tshirt-size sub-code (e.g. 'PS.m1.40' -> memory)."""
    if sku.get("metal"):
        return InstanceClass.METAL
    parts = (sku.get("tshirt_size") or "").split(".")
    code = parts[1] if len(parts) > 1 else ""
    return TSHIRT_CLASSES.get(code, InstanceClass.GENERAL)


def bytes_to_gb(value: Any) -> float:
    """Convert a byte count to GB (0 when missing)."""
    try:
        return int(value or 0) / BYTES_PER_GB
    except (TypeError, ValueError):
        return 0.0


def cloud_location(regions: Sequence[Dict[str, Any]], slug: str) -> Optional[Tuple[str, str]]:
    """
    Map a managed-database region slug to its (cloud provider, cloud region).

    The region's display name carries both, e.g. 'AWS us-east-1'.
    """
    for region in regions:
        if region.get("slug") == slug:
            parts = (region.get("display_name") or "").lower().split()
            if len(parts) >= 2:
                return parts[0], parts[1]
            return None
    return None


class PSDBAdapter(ProductAdapter):
    """Adapter for managed-database cluster SKUs. Items are SKU names (empty for all)."""

    offering = Offering.PSDB

    def __init__(self, catalog: CatalogClient, cloud_products: Optional[CloudProductLookup] = None):
        """
        Initialize adapter.

        Args:
            catalog: Managed-database catalog client
            cloud_products: Lookup used for the cross-provider enrichment
        """
        self.catalog = catalog
        self.cloud_products = cloud_products

    def fetch(self, items: Sequence[str], options: PricingOptions, enrich: bool = True) -> AdapterResult:
        """
        Fetch cluster SKUs for options.region.

        Set enrich=False to skip the cloud instance lookup.

        Raises:
            CatalogAPIError: If the cluster catalog cannot be retrieved
        """
        names = set(items)
        skus = [
            sku for sku in self.catalog.fetch_cluster_skus(options.region)
            if sku.get("rate") and (not names or sku.get("name") in names)
        ]
        result = AdapterResult()
        for sku in skus:
            product = self._to_product(sku)
            if product is not None:
                result.products.append(product)

        if enrich and result.products:
            result.products = self._enrich(result.products, options.region)
        return result

    def _to_product(self, sku: Dict[str, Any]) -> Optional[Product]:
        name = sku.get("name")
        vcpu = parse_price(sku.get("cpu")) or 0.0
        if not name or vcpu <= 0:
            logger.warning(f"Skipping cluster SKU without name or CPU count: {sku.get('name')}")
            return None
        return Product(
            instance_type=name,
            instance_family="",
            instance_size=sku.get("tshirt_size") or "",
            vcpu=vcpu,
            memory=bytes_to_gb(sku.get("ram")),
            ps_instance_class=classify_cluster_sku(sku),
            onboard_storage=int(bytes_to_gb(sku.get("storage"))),
            managed_rates=ManagedDbRates(
                rate=parse_price(sku.get("rate")) or 0.0,
                replica_rate=parse_price(sku.get("replica_rate")) or 0.0,
                default_gateway=sku.get("default_vtgate"),
                default_gateway_rate=parse_price(sku.get("default_vtgate_rate")) or 0.0,
            ),
        )

    def _enrich(self, products: List[Product], region: Optional[str]) -> List[Product]:
        if self.cloud_products is None or not region:
            return products
        try:
            location = cloud_location(self.catalog.fetch_regions(), region)
            if location is None:
                logger.warning(f"No cloud mapping for managed-database region '{region}'")
                return products
            cloud_products = self.cloud_products(*location)
        except (PricingAPIError, CatalogAPIError) as error:
            logger.warning(f"Skipping cloud instance enrichment for {region}: {error}")
            return products

        enriched = []
        for product in products:
            match = find_instance_match(product.vcpu, product.memory, product.ps_instance_class, cloud_products)
            if match is None:
                enriched.append(product)
                continue
            enriched.append(replace(product, provider_instance_type=match.instance_type))
        return enriched
