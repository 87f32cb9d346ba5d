"""
Provider adapter base classes and shared record parsing.

Adapters translate raw upstream pricing records into the unified product
schema. Per-item upstream failures are recorded on the AdapterResult, never
raised; configuration errors propagate.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging
import re

from cloudprice.core.config import Settings
from cloudprice.core.errors import PricingAPIError
from cloudprice.domain.offerings import Offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import AdapterResult, PricingBag, Product
from cloudprice.pricing.graphql_client import PricingGraphQLClient
from cloudprice.pricing.graphql_queries import alias_for, wrap_query
from cloudprice.pricing.strategies import Attempt, first_success
from cloudprice.services.purchase_keys import (
    PAYMENT_API_NAMES,
    build_reserved_key,
    payment_option_from_api,
)


logger = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r"\d*\.?\d+")


def attributes_to_dict(record: Dict[str, Any]) -> Dict[str, str]:
    """Convert an upstream [{key, value}] attribute list into a dict."""
    return {
        attribute.get("key"): attribute.get("value")
        for attribute in record.get("attributes") or []
        if attribute.get("key")
    }


def parse_price(value: Any) -> Optional[float]:
    """Parse an upstream USD price; None when missing or not numeric."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_leading_number(value: Optional[str]) -> float:
    """Parse the leading number of an attribute such as '16 GiB' (0 when absent)."""
    match = _NUMBER_PATTERN.match((value or "").strip().replace(",", ""))
    return float(match.group(0)) if match else 0.0


def first_priced_record(records: Iterable[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Select the first record whose first price entry is strictly positive.

    Args:
        records: Candidate product records in upstream order

    Returns:
        The selected record, or None if no candidate has a valid price
    """
    for record in records or []:
        prices = record.get("prices") or []
        if not prices:
            continue
        price = parse_price(prices[0].get("USD"))
        if price is not None and price > 0:
            return record
    return None


def upstream_purchase_option(options: PricingOptions) -> str:
    """Map a requested purchase type to the upstream purchaseOption name."""
    if options.purchase_type == "reserved":
        return "reserved"
    if options.purchase_type == "preemptible":
        return "preemptible"
    # committed-use prices are derived from on-demand
    return "on_demand"


def price_filter_for(options: PricingOptions) -> Dict[str, str]:
    """
    Build the upstream price filter for the requested purchase option.

    Reserved filters are always fully qualified, falling back to 1yr,
    standard and no upfront for unset sub-options.
    """
    purchase_option = upstream_purchase_option(options)
    if purchase_option != "reserved":
        return {"purchaseOption": purchase_option}
    return {
        "purchaseOption": "reserved",
        "termLength": options.purchase_term or "1yr",
        "termOfferingClass": options.offering_class or "standard",
        "termPurchaseOption": PAYMENT_API_NAMES.get(options.payment_option or "", PAYMENT_API_NAMES["no_upfront"]),
    }


def build_pricing_bag(prices: Sequence[Dict[str, Any]], options: PricingOptions) -> PricingBag:
    """
    File each price entry under the purchase option it declares.

    Entries without a purchaseOption are filed under the requested option.
    The first entry wins when several land on the same slot.
    """
    bag = PricingBag()
    requested = upstream_purchase_option(options)
    for entry in prices or []:
        price = parse_price(entry.get("USD"))
        if price is None:
            continue
        purchase_option = (entry.get("purchaseOption") or requested).lower()

        if purchase_option in ("on_demand", "ondemand"):
            if bag.ondemand is None:
                bag.ondemand = price
        elif purchase_option == "reserved":
            key = build_reserved_key(
                (entry.get("termLength") or options.purchase_term or "").lower(),
                (entry.get("termOfferingClass") or options.offering_class or "").lower(),
                payment_option_from_api(entry.get("termPurchaseOption")) or options.payment_option,
            )
            bag.reserved.setdefault(key, price)
        elif purchase_option == "preemptible":
            if bag.preemptible is None:
                bag.preemptible = price
        else:
            logger.warning(f"Ignoring price entry with unknown purchase option '{purchase_option}'")
    return bag


class ProductAdapter(ABC):
    """Base for adapters that turn upstream records into products."""

    offering: Offering

    @abstractmethod
    def fetch(self, items: Sequence[str], options: PricingOptions) -> AdapterResult:
        """
        Fetch and normalize products.

        Args:
            items: Instance types (or region codes for volume adapters)
            options: Normalized request options

        Returns:
            AdapterResult with products and per-item failures
        """


class GraphQLAdapter(ProductAdapter):
    """Adapter backed by the GraphQL pricing service."""

    def __init__(self, client: PricingGraphQLClient, settings: Settings):
        self.client = client
        self.settings = settings


class InstanceAdapter(GraphQLAdapter):
    """
    Compute instance adapter with batched queries.

    Up to BATCH_THRESHOLD types are queried one by one; larger requests are
    split into chunks of BATCH_SIZE aliased sub-queries. A failed batch falls
    back to individual queries for that chunk.
    """

    BATCH_THRESHOLD = 3
    BATCH_SIZE = 10
    # Re-query types a batch returned nothing for (so name variants get tried)
    RETRY_MISSING_INDIVIDUALLY = False

    @abstractmethod
    def build_selection(self, instance_type: str, options: PricingOptions, alias: Optional[str] = None) -> str:
        """Build the products(...) selection for one instance type."""

    @abstractmethod
    def to_product(
        self,
        instance_type: str,
        record: Dict[str, Any],
        options: PricingOptions,
        queried_type: Optional[str] = None
    ) -> Optional[Product]:
        """
        Convert a priced upstream record into a Product (None to skip it).

        queried_type is the upstream name that produced the record when it
        differs from the requested instance type.
        """

    def name_variants(self, instance_type: str) -> List[str]:
        """Upstream names to try, in order, for one instance type."""
        return [instance_type]

    def fetch(self, items: Sequence[str], options: PricingOptions) -> AdapterResult:
        instance_types = list(dict.fromkeys(items))
        result = AdapterResult()
        if len(instance_types) <= self.BATCH_THRESHOLD:
            for instance_type in instance_types:
                result.extend(self._fetch_individual(instance_type, options))
            return result

        for start in range(0, len(instance_types), self.BATCH_SIZE):
            chunk = instance_types[start:start + self.BATCH_SIZE]
            attempt = first_success([
                ("batch", lambda chunk=chunk: self._try_batch(chunk, options)),
                ("individual", lambda chunk=chunk: Attempt.success(self._fetch_each(chunk, options))),
            ])
            result.extend(attempt.value)

        logger.info(
            f"{self.offering.provider}/{self.offering.product}: {len(result.products)} products "
            f"for {len(instance_types)} types, {len(result.failures)} failed"
        )
        return result

    def _fetch_each(self, instance_types: Sequence[str], options: PricingOptions) -> AdapterResult:
        result = AdapterResult()
        for instance_type in instance_types:
            result.extend(self._fetch_individual(instance_type, options))
        return result

    def _try_batch(self, instance_types: Sequence[str], options: PricingOptions) -> Attempt:
        aliases = {instance_type: alias_for(instance_type) for instance_type in instance_types}
        query = wrap_query([
            self.build_selection(instance_type, options, alias=alias)
            for instance_type, alias in aliases.items()
        ])
        logger.info(f"Batched query for {len(instance_types)} instance types")
        try:
            data = self.client.execute(query)
        except PricingAPIError as error:
            return Attempt.failure(str(error))

        result = AdapterResult()
        missing: List[str] = []
        for instance_type, alias in aliases.items():
            record = first_priced_record(data.get(alias) or [])
            product = self.to_product(instance_type, record, options) if record else None
            if product is None:
                logger.info(f"Batched: no valid price for {instance_type}")
                missing.append(instance_type)
                continue
            result.products.append(product)

        if missing and self.RETRY_MISSING_INDIVIDUALLY:
            logger.warning(f"Falling back to individual lookups for {len(missing)} instance type(s)")
            result.extend(self._fetch_each(missing, options))
        return Attempt.success(result)

    def _fetch_individual(self, instance_type: str, options: PricingOptions) -> AdapterResult:
        upstream_errors: List[str] = []

        def query_variant(variant: str) -> Attempt:
            try:
                data = self.client.execute(wrap_query([self.build_selection(variant, options)]))
            except PricingAPIError as error:
                upstream_errors.append(str(error))
                return Attempt.failure(str(error))
            record = first_priced_record(data.get("products") or [])
            product = self.to_product(instance_type, record, options, variant) if record else None
            if product is None:
                return Attempt.failure(f"no valid price for {variant}")
            return Attempt.success(product)

        attempt = first_success(
            (variant, lambda variant=variant: query_variant(variant))
            for variant in self.name_variants(instance_type)
        )
        result = AdapterResult()
        if attempt.succeeded:
            result.products.append(attempt.value)
        elif upstream_errors:
            logger.error(f"Dropping {instance_type}: {upstream_errors[-1]}")
            result.failures[instance_type] = "; ".join(upstream_errors)
        else:
            logger.info(f"No valid price for {instance_type}, skipping")
        return result
