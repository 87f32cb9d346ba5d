"""
GCP Compute Engine instance adapter.

Committed-use prices are not published per machine type; they are derived
from the on-demand price with a fixed discount table.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from cloudprice.domain.offerings import Offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import InstanceClass, PricingBag, Product
from cloudprice.pricing.base import (
    InstanceAdapter,
    attributes_to_dict,
    build_pricing_bag,
    parse_leading_number,
    price_filter_for,
)
from cloudprice.pricing.graphql_queries import products_selection
from cloudprice.services.purchase_keys import CUD_TYPES, build_committed_key


logger = logging.getLogger(__name__)


# (term, cud type) -> discount off on-demand
CUD_DISCOUNTS: Dict[Tuple[str, str], float] = {
    ("1yr", "flexi"): 0.18,
    ("1yr", "resource"): 0.37,
    ("3yr", "flexi"): 0.46,
    ("3yr", "resource"): 0.55,
}

# Middle token of the machine type -> (tier tag, GB of memory per vCPU)
MACHINE_CLASSES: Dict[str, Tuple[InstanceClass, float]] = {
    "standard": (InstanceClass.GENERAL, 4),
    "highmem": (InstanceClass.MEMORY, 8),
    "highcpu": (InstanceClass.COMPUTE, 0.9),
}

METAL_FAMILIES = ("n2d", "z3")
LOCAL_SSD_SUFFIXES = ("-highlssd", "-standardlssd", "-lssd")
LOCAL_SSD_UNIT_GB = 375
LOCAL_SSD_COUNTS = (1, 2, 4, 8, 16, 24)


def cud_discount(purchase_term: Optional[str], cud_type: Optional[str]) -> float:
    """Committed-use discount; unset values fall back to 1yr and flexi."""
    term = "3yr" if purchase_term == "3yr" else "1yr"
    kind = "resource" if cud_type == "resource" else "flexi"
    return CUD_DISCOUNTS[(term, kind)]


def trailing_size(machine_type: str) -> int:
    """The last integer token of a machine type name (0 when there is none)."""
    for part in reversed(machine_type.split("-")):
        if part.isdigit():
            return int(part)
    return 0


def parse_machine_type(machine_type: str, attributes: Dict[str, str]) -> Tuple[float, float]:
    """
    Resolve (vCPU, memory GB) for a machine type.

    Upstream attributes win; otherwise the size token of the name gives the
    vCPU count and memory is estimated per core from the middle token.
    """
    cores = parse_leading_number(attributes.get("vCPUs")) or parse_leading_number(attributes.get("vcpu"))
    memory = parse_leading_number(attributes.get("memory"))
    if cores:
        return cores, memory

    parts = machine_type.split("-")
    if len(parts) >= 3:
        size = trailing_size(machine_type)
        if size > 0:
            cores = float(size)
            if parts[1] in MACHINE_CLASSES:
                memory = size * MACHINE_CLASSES[parts[1]][1]
    return cores, memory


def classify_machine_type(machine_type: str) -> InstanceClass:
    """Tier tag from the middle token; n2d and z3 families are always metal."""
    parts = machine_type.split("-")
    if parts[0] in METAL_FAMILIES:
        return InstanceClass.METAL
    middle = parts[1] if len(parts) > 1 else ""
    return MACHINE_CLASSES.get(middle, (InstanceClass.GENERAL, 0))[0]


def local_ssd_units(machine_type: str) -> float:
    """Number of 375 GB local SSD units assumed for a metal machine type."""
    if machine_type.split("-")[0] == "c2d":
        return 1
    size = trailing_size(machine_type)
    return size / 8 if size > 4 else 1


def local_ssd_volume_options(machine_type: str) -> List[int]:
    """
    Allowed local SSD counts for a machine type.

    Examples:
        n2-standard-16 -> [2, 4, 8, 16, 24]
        c2d-standard-32 -> [1, 2, 4, 8]
    """
    parts = machine_type.split("-")
    if parts[0] == "c2d":
        return [1, 2, 4, 8]
    size = int(parts[2]) if len(parts) > 2 and parts[2].isdigit() else 0
    minimum = size / 8 if size > 4 else 1
    return [count for count in LOCAL_SSD_COUNTS if count >= minimum]


def add_committed_prices(bag: PricingBag) -> None:
    """Derive every committed-use key from the on-demand price."""
    if not bag.ondemand:
        return
    for term in ("1yr", "3yr"):
        for kind in CUD_TYPES:
            bag.committed[build_committed_key(term, kind)] = bag.ondemand * (1 - cud_discount(term, kind))


class GCPComputeAdapter(InstanceAdapter):
    """Adapter for GCP Compute Engine machine types."""

    offering = Offering.GCP_COMPUTE
    RETRY_MISSING_INDIVIDUALLY = True

    def name_variants(self, instance_type: str) -> List[str]:
        variants = [instance_type]
        if "lssd" not in instance_type and instance_type.startswith("z3-"):
            variants.extend(instance_type + suffix for suffix in LOCAL_SSD_SUFFIXES)
        return variants

    def build_selection(self, instance_type: str, options: PricingOptions, alias: Optional[str] = None) -> str:
        return products_selection(
            vendor="gcp",
            service="Compute Engine",
            region=options.region,
            attribute_filters=[("machineType", instance_type)],
            price_filter=price_filter_for(options),
            product_family="Compute Instance",
            alias=alias,
        )

    def to_product(
        self,
        instance_type: str,
        record: Dict[str, Any],
        options: PricingOptions,
        queried_type: Optional[str] = None
    ) -> Optional[Product]:
        attributes = attributes_to_dict(record)
        resolved_type = attributes.get("machineType") or attributes.get("machine_type") or queried_type or instance_type
        vcpu, memory = parse_machine_type(resolved_type, attributes)
        if vcpu <= 0:
            logger.warning(f"Skipping {instance_type}: unable to determine vCPU count")
            return None

        parts = instance_type.split("-")
        instance_class = classify_machine_type(instance_type)
        onboard_storage = 0
        if instance_class == InstanceClass.METAL:
            onboard_storage = int(LOCAL_SSD_UNIT_GB * local_ssd_units(instance_type))

        bag = build_pricing_bag(record.get("prices") or [], options)
        add_committed_prices(bag)
        if resolved_type != instance_type:
            logger.info(f"Resolved {instance_type} to {resolved_type}")

        return Product(
            instance_type=instance_type,
            instance_family=parts[0],
            instance_size=parts[2] if len(parts) > 2 else "",
            vcpu=vcpu,
            memory=memory,
            ps_instance_class=instance_class,
            pricing={options.region: {"linux": bag}},
            onboard_storage=onboard_storage,
            resolved_instance_type=resolved_type,
        )
