"""
AWS EBS volume adapter.
Fetches per GB-month storage prices and, for provisioned-IOPS types, per IOPS-month prices.
"""
from typing import Dict, Optional, Sequence, Tuple
import logging

from cloudprice.core.errors import PricingAPIError
from cloudprice.domain.offerings import Offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import AdapterResult, VolumeProduct
from cloudprice.pricing.base import GraphQLAdapter, first_priced_record, parse_price
from cloudprice.pricing.graphql_queries import products_selection, wrap_query


logger = logging.getLogger(__name__)


EBS_VOLUME_TYPES: Tuple[str, ...] = ("gp3", "gp2", "io2", "io1")
IOPS_VOLUME_TYPES: Tuple[str, ...] = ("gp3", "io2")


class AWSEBSAdapter(GraphQLAdapter):
    """Adapter for AWS EBS volume types. Items are region codes."""

    offering = Offering.AWS_EBS

    def _query_price(self, region: str, product_family: str, attribute_filters) -> Optional[float]:
        query = wrap_query([
            products_selection(
                vendor="aws",
                service="AmazonEC2",
                region=region,
                attribute_filters=attribute_filters,
                price_filter={"purchaseOption": "on_demand"},
                product_family=product_family,
                include_attributes=False,
            )
        ])
        record = first_priced_record(self.client.execute(query).get("products") or [])
        if record is None:
            return None
        return parse_price(record["prices"][0].get("USD"))

    def fetch(self, items: Sequence[str], options: PricingOptions) -> AdapterResult:
        """
        Fetch volume prices for each region.

        Only options.volume_type is fetched when it is set, otherwise every
        supported EBS volume type.
        """
        volume_types = (options.volume_type,) if options.volume_type else EBS_VOLUME_TYPES
        result = AdapterResult()
        for region in dict.fromkeys(items):
            for volume_type in volume_types:
                product, failure = self._fetch_volume(region, volume_type)
                if product is not None:
                    result.products.append(product)
                if failure:
                    result.failures[f"{region}/{volume_type}"] = failure
        return result

    def _fetch_volume(self, region: str, volume_type: str):
        try:
            storage_price = self._query_price(region, "Storage", [("volumeApiName", volume_type)])
        except PricingAPIError as error:
            logger.error(f"Error fetching EBS pricing for {volume_type} in {region}: {error}")
            return None, str(error)

        prices: Dict[str, Optional[float]] = {"price_per_gb_month": storage_price}
        failure = None
        if volume_type in IOPS_VOLUME_TYPES:
            try:
                iops_price = self._query_price(
                    region,
                    "System Operation",
                    [("volumeApiName", volume_type), ("group", "EBS IOPS")],
                )
            except PricingAPIError as error:
                logger.error(f"Error fetching EBS IOPS pricing for {volume_type} in {region}: {error}")
                iops_price = None
                failure = str(error)
            prices["price_per_iops_month"] = iops_price
            if volume_type == "io2":
                # Tier-specific rates are not available upstream; all tiers use the base IOPS price
                prices["price_per_tier1_iops_month"] = iops_price
                prices["price_per_tier2_iops_month"] = iops_price
                prices["price_per_tier3_iops_month"] = iops_price

        return VolumeProduct(region=region, volume_type=volume_type, **prices), failure
