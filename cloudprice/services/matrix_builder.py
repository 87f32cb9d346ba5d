"""
Matrix builder.
Turns a region's products into a priced, sorted table.
"""
from typing import Any, List, Sequence
import logging

from cloudprice.domain.offerings import Offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import Product
from cloudprice.services.price_resolver import HOURS_PER_MONTH, monthly_cost, resolve_hourly_price


logger = logging.getLogger(__name__)


MATRIX_HEADER = [
    "Instance Type",
    "Cloud Provider",
    "Region",
    "PS Instance Class",
    "vCPU's",
    "Memory (GB)",
    "On-board Storage",
    "Hourly Cost",
    "Monthly Cost",
    "Provider Instance Type",
]


def sort_key(product: Product):
    return (product.instance_family, float(product.vcpu), int(product.memory))


def sort_descending(products: Sequence[Product]) -> List[Product]:
    """Sort by family, vCPU, then memory, all descending (stable for ties)."""
    return sorted(products, key=sort_key, reverse=True)


def build_matrix(
    offering: Offering,
    products: Sequence[Product],
    options: PricingOptions,
    hours_per_month: int = HOURS_PER_MONTH
) -> List[List[Any]]:
    """
    Build the regional price table.

    Products are sorted descending and emitted from the tail, so the rows
    come out ascending. Products without a price are omitted.

    Args:
        offering: Offering the products belong to
        products: Normalized products in fetch order
        options: Normalized request options
        hours_per_month: Hours used for the monthly column

    Returns:
        Header row followed by one row per priced product
    """
    ordered = sort_descending(products)
    rows: List[List[Any]] = [list(MATRIX_HEADER)]
    for product in reversed(ordered):
        hourly = resolve_hourly_price(offering, product, options, hours_per_month)
        if hourly is None:
            logger.info(f"Skipping {product.instance_type}: no price for purchase type {options.purchase_type}")
            continue
        rows.append([
            product.instance_type,
            offering.provider,
            options.region,
            product.ps_instance_class.value,
            float(product.vcpu),
            int(product.memory),
            int(product.onboard_storage) if product.onboard_storage else "",
            hourly,
            monthly_cost(hourly, hours_per_month),
            product.provider_instance_type or "",
        ])
    logger.info(f"Built matrix with {len(rows) - 1} rows from {len(products)} products")
    return rows
