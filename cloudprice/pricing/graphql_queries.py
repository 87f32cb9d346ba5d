"""
Builders for pricing GraphQL queries.
"""
import re
from typing import Dict, List, Optional, Sequence, Tuple


PRICE_FIELDS = "USD purchaseOption termLength termOfferingClass termPurchaseOption"


def alias_for(instance_type: str) -> str:
    """
    GraphQL-safe alias for an instance type.

    Examples:
        m5.xlarge -> inst_m5_xlarge
        n2-standard-4 -> inst_n2_standard_4
    """
    return "inst_" + re.sub(r"[^0-9A-Za-z_]", "_", instance_type)


def _format_price_filter(price_filter: Dict[str, str]) -> str:
    if not price_filter:
        return ""
    parts = [f'{key}: "{value}"' for key, value in price_filter.items()]
    return "filter: { " + ", ".join(parts) + " }"


def products_selection(
    vendor: str,
    service: str,
    region: str,
    attribute_filters: Sequence[Tuple[str, str]],
    price_filter: Dict[str, str],
    product_family: Optional[str] = None,
    alias: Optional[str] = None,
    include_attributes: bool = True
) -> str:
    """
    Build one products(...) selection.

    Args:
        vendor: Vendor name (aws, gcp)
        service: Upstream service name (e.g., 'AmazonEC2')
        region: Region code
        attribute_filters: (key, value) attribute pairs
        price_filter: Price filter fields (purchaseOption, termLength, ...)
        product_family: Optional product family (e.g., 'Compute Instance')
        alias: Optional alias, used when batching several selections
        include_attributes: Whether to request product attributes

    Returns:
        Selection text suitable for wrap_query()
    """
    filter_lines = [f'vendorName: "{vendor}"', f'service: "{service}"']
    if product_family:
        filter_lines.append(f'productFamily: "{product_family}"')
    filter_lines.append(f'region: "{region}"')
    attributes = ", ".join(f'{{ key: "{key}", value: "{value}" }}' for key, value in attribute_filters)
    filter_lines.append(f"attributeFilters: [ {attributes} ]")

    prefix = f"{alias}: " if alias else ""
    attributes_selection = "attributes { key value } " if include_attributes else ""
    price_args = _format_price_filter(price_filter)
    prices = f"prices({price_args}) {{ {PRICE_FIELDS} }}" if price_args else f"prices {{ {PRICE_FIELDS} }}"
    return (
        f"{prefix}products(filter: {{ {' '.join(filter_lines)} }}) "
        f"{{ {attributes_selection}{prices} }}"
    )


def wrap_query(selections: List[str]) -> str:
    """Wrap one or more selections into a query document."""
    return "{ " + " ".join(selections) + " }"
