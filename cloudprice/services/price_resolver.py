"""
Price resolver.

Resolves the hourly price of a normalized product under a set of purchase
options. Unavailable prices are None, never 0.
"""
from typing import Callable, Dict, Optional
import logging

from cloudprice.domain.offerings import Offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import LocalSsdProduct, ManagedDbRates, PricingBag, Product, VolumeProduct
from cloudprice.services.purchase_keys import build_committed_key, build_reserved_key


logger = logging.getLogger(__name__)


HOURS_PER_MONTH = 730
INCLUDED_DATA_GB = 10
DATA_PRICE_PER_GB = 1.50
BASE_REPLICAS = 3
BASE_GATEWAYS = 3

# io2 provisioned IOPS tier upper bounds
IO2_TIER1_MAX_IOPS = 32000
IO2_TIER2_MAX_IOPS = 64000


def _positive(price: Optional[float]) -> Optional[float]:
    """Zero and missing prices are both unavailable."""
    if price is None or price <= 0:
        return None
    return price


def _ondemand(bag: PricingBag, options: PricingOptions) -> Optional[float]:
    return _positive(bag.ondemand)


def _reserved(bag: PricingBag, options: PricingOptions) -> Optional[float]:
    key = build_reserved_key(options.purchase_term, options.offering_class, options.payment_option)
    return _positive(bag.reserved.get(key))


def _committed(bag: PricingBag, options: PricingOptions) -> Optional[float]:
    key = build_committed_key(options.purchase_term, options.cud_type)
    return _positive(bag.committed.get(key))


def _preemptible(bag: PricingBag, options: PricingOptions) -> Optional[float]:
    return _positive(bag.preemptible)


BagResolver = Callable[[PricingBag, PricingOptions], Optional[float]]

# Offering -> purchase type -> resolver
BAG_RESOLVERS: Dict[Offering, Dict[str, BagResolver]] = {
    Offering.AWS_EC2: {
        "ondemand": _ondemand,
        "reserved": _reserved,
    },
    Offering.GCP_COMPUTE: {
        "ondemand": _ondemand,
        "committed-use": _committed,
        "committed": _committed,
        "preemptible": _preemptible,
    },
}


def monthly_cost(hourly: float, hours_per_month: int = HOURS_PER_MONTH) -> float:
    """Monthly cost from an hourly price."""
    return hourly * hours_per_month


def managed_db_monthly_price(rates: ManagedDbRates, options: PricingOptions) -> float:
    """
    Monthly price of a managed-database cluster.

    The SKU rate covers 3 replicas and the default gateways. Shards, extra
    replicas, extra gateways, a gateway override and data above the included
    10 GB each adjust their own term of that rate.
    """
    shards = max(int(options.shards or 1), 1)
    extra_replicas = int(options.extra_replicas or 0)
    extra_gateways = int(options.extra_gateway_replicas or 0)
    override = float(options.gateway_override_price or 0)
    data_size = float(options.data_size_gb or 0)

    result = rates.rate
    if shards > 1:
        base_replicas = rates.replica_rate * BASE_REPLICAS
        result += base_replicas * shards - base_replicas
    if extra_replicas:
        result += rates.replica_rate * extra_replicas
    if extra_gateways:
        result += rates.default_gateway_rate * extra_gateways
    if override > 0:
        total_gateways = BASE_GATEWAYS + extra_gateways
        default_gateways = rates.default_gateway_rate * shards / 3 * total_gateways
        override_gateways = override * shards / 3 * total_gateways
        result += override_gateways - default_gateways
    if data_size > INCLUDED_DATA_GB:
        result += (data_size - INCLUDED_DATA_GB) * DATA_PRICE_PER_GB
    return result


def resolve_hourly_price(
    offering: Offering,
    product: Product,
    options: PricingOptions,
    hours_per_month: int = HOURS_PER_MONTH
) -> Optional[float]:
    """
    Resolve a product's hourly price.

    Args:
        offering: Offering the product belongs to
        product: Normalized product
        options: Normalized options (purchase_type unset means ondemand)
        hours_per_month: Hours used to convert monthly managed-database rates

    Returns:
        Hourly price, or None if unavailable
    """
    if offering == Offering.PSDB:
        if product.managed_rates is None:
            return None
        return _positive(managed_db_monthly_price(product.managed_rates, options) / hours_per_month)

    resolver = BAG_RESOLVERS.get(offering, {}).get(options.purchase_type or "ondemand")
    if resolver is None:
        logger.warning(f"No resolver for purchase type '{options.purchase_type}' on {offering.value}")
        return None

    # GCP prices are filed under "linux" only
    platform = (options.platform or "linux") if offering == Offering.AWS_EC2 else "linux"
    bag = product.pricing_bag(options.region, platform)
    if bag is None:
        return None
    return resolver(bag, options)


def io2_iops_tier(provisioned_iops: float) -> int:
    """io2 IOPS pricing tier (1-3) for a provisioned IOPS count."""
    if provisioned_iops <= IO2_TIER1_MAX_IOPS:
        return 1
    if provisioned_iops <= IO2_TIER2_MAX_IOPS:
        return 2
    return 3


def ebs_monthly_rate(volume: VolumeProduct, storage_type: Optional[str], volume_size: float) -> Optional[float]:
    """Per-unit monthly rate for an EBS volume (per GB for storage, per IOPS for iops)."""
    if (storage_type or "storage") == "storage":
        return volume.price_per_gb_month
    if volume.volume_type == "io2":
        tier = io2_iops_tier(volume_size)
        return getattr(volume, f"price_per_tier{tier}_iops_month")
    return volume.price_per_iops_month


def resolve_volume_hourly_price(
    volume: object,
    options: PricingOptions,
    hours_per_month: int = HOURS_PER_MONTH
) -> Optional[float]:
    """
    Hourly price of a volume of options.volume_size units.

    EBS: rate x size / hours. Local SSD: per-TB rate / 1024 x GB / hours.
    """
    size = float(options.volume_size)
    if isinstance(volume, LocalSsdProduct):
        return _positive(volume.price_per_tb_month / 1024 * size / hours_per_month)
    if isinstance(volume, VolumeProduct):
        rate = _positive(ebs_monthly_rate(volume, options.storage_type, size))
        if rate is None:
            return None
        return rate * size / hours_per_month
    raise TypeError(f"Unsupported volume product: {type(volume).__name__}")
