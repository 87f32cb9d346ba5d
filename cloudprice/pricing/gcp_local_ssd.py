"""
GCP local SSD adapter.
"""
from typing import Optional, Sequence
import logging

from cloudprice.core.errors import PricingAPIError
from cloudprice.domain.offerings import Offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import AdapterResult, LocalSsdProduct
from cloudprice.pricing.base import GraphQLAdapter, attributes_to_dict, parse_price
from cloudprice.pricing.graphql_queries import products_selection, wrap_query


logger = logging.getLogger(__name__)


FALLBACK_PRICE_PER_TB_MONTH = 81.92
_GENERIC_DESCRIPTION = "SSD backed Local Storage"


class GCPLocalSSDAdapter(GraphQLAdapter):
    """Adapter for the generic GCP local SSD rate. Items are region codes."""

    offering = Offering.GCP_LOCAL_SSD

    def _fetch_price_per_gb_month(self, region: str) -> Optional[float]:
        query = wrap_query([
            products_selection(
                vendor="gcp",
                service="Compute Engine",
                region=region,
                attribute_filters=[("resourceGroup", "LocalSSD")],
                price_filter={"purchaseOption": "on_demand"},
            )
        ])
        for record in self.client.execute(query).get("products") or []:
            description = attributes_to_dict(record).get("description") or ""
            prices = record.get("prices") or []
            if (
                description.startswith(_GENERIC_DESCRIPTION)
                and "Preemptible" not in description
                and "Reserved" not in description
                and prices
            ):
                return parse_price(prices[0].get("USD"))
        return None

    def fetch(self, items: Sequence[str], options: PricingOptions) -> AdapterResult:
        """
        Fetch the per TB-month local SSD rate for each region.

        Falls back to a fixed rate when no generic SSD product is found or
        the upstream call fails.
        """
        result = AdapterResult()
        for region in dict.fromkeys(items):
            try:
                price_per_gb = self._fetch_price_per_gb_month(region)
            except PricingAPIError as error:
                logger.warning(f"Failed to fetch local SSD pricing for {region}, using fallback: {error}")
                price_per_gb = None

            if price_per_gb:
                result.products.append(LocalSsdProduct(region=region, price_per_tb_month=price_per_gb * 1024))
            else:
                logger.info(f"No generic local SSD price for {region}, using fallback rate")
                result.products.append(LocalSsdProduct(
                    region=region,
                    price_per_tb_month=FALLBACK_PRICE_PER_TB_MONTH,
                    from_upstream=False,
                ))
        return result
