"""
Supported (provider, product) pairs.
Every dispatch on provider/product goes through this closed set.
"""
from enum import Enum
from typing import Dict, List, Tuple

from cloudprice.core.errors import OptionValidationError


class Offering(Enum):
    """One member per supported (provider, product) pair."""
    AWS_EC2 = ("aws", "ec2")
    AWS_EBS = ("aws", "ebs")
    GCP_COMPUTE = ("gcp", "compute")
    GCP_LOCAL_SSD = ("gcp", "gcs")
    PSDB = ("planetscale", "psdb")

    @property
    def provider(self) -> str:
        return self.value[0]

    @property
    def product(self) -> str:
        return self.value[1]

    @property
    def is_volume(self) -> bool:
        return self in (Offering.AWS_EBS, Offering.GCP_LOCAL_SSD)


_OFFERINGS: Dict[Tuple[str, str], Offering] = {offering.value: offering for offering in Offering}


def supported_providers() -> List[str]:
    """Provider names in declaration order, without duplicates."""
    providers: List[str] = []
    for offering in Offering:
        if offering.provider not in providers:
            providers.append(offering.provider)
    return providers


def resolve_offering(provider: str, product: str) -> Offering:
    """
    Map provider and product names to an Offering.

    Args:
        provider: Cloud provider (e.g., 'aws')
        product: Product family (e.g., 'ec2')

    Returns:
        Matching Offering

    Raises:
        OptionValidationError: If provider or product is unknown
    """
    provider = (provider or "").strip().lower()
    product = (product or "").strip().lower()

    providers = supported_providers()
    if provider not in providers:
        raise OptionValidationError(
            f'Currently unsupported Cloud Provider "{provider}". Supported providers: {providers}',
            field="provider",
            value=provider,
            accepted=providers,
        )

    offering = _OFFERINGS.get((provider, product))
    if offering is None:
        products = [o.product for o in Offering if o.provider == provider]
        raise OptionValidationError(
            f'Currently unsupported Cloud Product "{product}" for {provider}. '
            f'Supported products: {sorted(products)}',
            field="product",
            value=product,
            accepted=products,
        )
    return offering
