"""
AWS EC2 instance adapter.
Queries the GraphQL pricing service for Compute Instance products.
"""
from typing import Any, Dict, Optional
import logging
import re

from cloudprice.domain.offerings import Offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import InstanceClass, Product
from cloudprice.pricing.base import (
    InstanceAdapter,
    attributes_to_dict,
    build_pricing_bag,
    parse_leading_number,
    price_filter_for,
)
from cloudprice.pricing.graphql_queries import products_selection


logger = logging.getLogger(__name__)


# Request platform -> upstream operatingSystem attribute
OPERATING_SYSTEMS: Dict[str, str] = {
    "linux": "Linux",
    "windows": "Windows",
    "rhel": "RHEL",
    "suse": "SUSE",
}

# Leading letter of the instance family -> tier tag
FAMILY_CLASSES: Dict[str, InstanceClass] = {
    "c": InstanceClass.COMPUTE,
    "r": InstanceClass.MEMORY,
    "m": InstanceClass.GENERAL,
    "i": InstanceClass.METAL,
}

_STORAGE_PATTERN = re.compile(r"(\d+)\s*x\s*(\d+)")


def parse_instance_storage(storage: Optional[str]) -> int:
    """
    Parse the instance storage attribute into total GB.

    Examples:
        "EBS only" -> 0
        "2 x 1900 NVMe SSD" -> 3800
    """
    if not storage or storage == "EBS only":
        return 0
    match = _STORAGE_PATTERN.search(storage)
    if not match:
        return 0
    return int(match.group(1)) * int(match.group(2))


def classify_ec2(instance_family: str, onboard_storage: int) -> InstanceClass:
    """Tier tag from the family's leading letter; local storage forces metal."""
    if onboard_storage > 0:
        return InstanceClass.METAL
    return FAMILY_CLASSES.get(instance_family[:1].lower(), InstanceClass.GENERAL)


def split_instance_type(instance_type: str):
    """Split 'm5.xlarge' into ('m5', 'xlarge')."""
    family, _, size = instance_type.partition(".")
    return family, size


class AWSEC2Adapter(InstanceAdapter):
    """Adapter for AWS EC2 compute instances."""

    offering = Offering.AWS_EC2

    def build_selection(self, instance_type: str, options: PricingOptions, alias: Optional[str] = None) -> str:
        platform = options.platform or "linux"
        attribute_filters = [
            ("instanceType", instance_type),
            ("operatingSystem", OPERATING_SYSTEMS.get(platform, platform)),
            ("tenancy", "Shared"),
            ("preInstalledSw", "NA"),
            ("operation", "RunInstances"),
        ]
        return products_selection(
            vendor="aws",
            service="AmazonEC2",
            region=options.region,
            attribute_filters=attribute_filters,
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
        vcpu = parse_leading_number(attributes.get("vcpu"))
        if vcpu <= 0:
            logger.warning(f"Skipping {instance_type}: upstream record has no vCPU count")
            return None

        family, size = split_instance_type(instance_type)
        storage = parse_instance_storage(attributes.get("storage"))
        platform = options.platform or "linux"
        return Product(
            instance_type=instance_type,
            instance_family=family,
            instance_size=size,
            vcpu=vcpu,
            memory=parse_leading_number(attributes.get("memory")),
            ps_instance_class=classify_ec2(family, storage),
            pricing={options.region: {platform: build_pricing_bag(record.get("prices") or [], options)}},
            onboard_storage=storage,
            resolved_instance_type=attributes.get("instanceType") or queried_type or instance_type,
        )
