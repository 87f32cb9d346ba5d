"""
Cross-provider instance matcher.
Finds the cloud instance type equivalent to a managed-database instance.
"""
from typing import Optional, Sequence

from cloudprice.domain.products import InstanceClass, Product


MIN_VCPU = 2
MIN_MEMORY_GB = 16


def find_instance_match(
    vcpu: float,
    memory: float,
    instance_class: InstanceClass,
    candidates: Sequence[Product]
) -> Optional[Product]:
    """
    Find the cloud product with the same shape and tier.

    Targets below the smallest managed tiers are raised to 2 vCPU / 16 GB
    before matching. Matching is exact on (vCPU, memory, tier); when several
    candidates tie, the last one in fetch order wins.

    Args:
        vcpu: Target vCPU count
        memory: Target memory in GB
        instance_class: Target tier tag
        candidates: Cloud products in fetch order

    Returns:
        The matching product, or None
    """
    vcpu = max(float(vcpu), MIN_VCPU)
    memory = max(float(memory), MIN_MEMORY_GB)

    match = None
    for candidate in candidates:
        if (
            float(candidate.vcpu) == vcpu
            and float(candidate.memory) == memory
            and candidate.ps_instance_class == instance_class
        ):
            match = candidate
    return match
