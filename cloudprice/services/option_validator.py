"""
Option validator.

Checks a provider/product/purchase-option combination against a static
capability table before anything is fetched. Every rejection names the
field, the value received and the accepted values.
"""
from typing import Dict, Optional, Tuple

from cloudprice.core.errors import OptionValidationError
from cloudprice.domain.offerings import Offering, resolve_offering
from cloudprice.domain.options import PricingOptions


TERMS = ("1yr", "3yr")

# Offering -> purchase type -> sub-option field -> accepted values
PURCHASE_CAPABILITIES: Dict[Offering, Dict[str, Dict[str, Tuple[str, ...]]]] = {
    Offering.AWS_EC2: {
        "ondemand": {},
        "reserved": {
            "purchase_term": TERMS,
            "offering_class": ("standard", "convertible"),
            "payment_option": ("all_upfront", "partial_upfront", "no_upfront"),
        },
    },
    Offering.GCP_COMPUTE: {
        "ondemand": {},
        "committed-use": {
            "purchase_term": TERMS,
            "cud_type": ("flexi", "resource"),
        },
        "committed": {
            "purchase_term": TERMS,
            "cud_type": ("flexi", "resource"),
        },
        "preemptible": {},
    },
    Offering.PSDB: {},
}

# Offering -> volume type -> accepted storage types
VOLUME_CAPABILITIES: Dict[Offering, Dict[str, Tuple[str, ...]]] = {
    Offering.AWS_EBS: {
        "gp3": ("storage", "iops"),
        "io2": ("storage", "iops"),
        "gp2": ("storage",),
        "io1": ("storage",),
    },
    Offering.GCP_LOCAL_SSD: {
        "localssd": (),
    },
}

# Field name -> (request name, human label)
_SUB_OPTIONS: Dict[str, Tuple[str, str]] = {
    "purchase_term": ("purchaseTerm", "Purchase Term"),
    "offering_class": ("offeringClass", "Offering Class"),
    "payment_option": ("paymentOption", "Payment Option"),
    "cud_type": ("cudType", "CUD Type"),
}


def validate_instance_options(offering: Offering, options: PricingOptions) -> None:
    """
    Validate purchase options for an instance offering.

    Raises:
        OptionValidationError: If the purchase type or one of its sub-options is not supported
    """
    purchase_types = PURCHASE_CAPABILITIES.get(offering, {})
    purchase_type = options.purchase_type

    if purchase_type and purchase_type not in purchase_types:
        raise OptionValidationError(
            f'Purchase Type "{purchase_type}" is not supported for "{offering.product}". '
            f"Supported types: {sorted(purchase_types)}",
            field="purchaseType",
            value=purchase_type,
            accepted=purchase_types,
        )

    effective_type = purchase_type or "ondemand"
    sub_options = purchase_types.get(effective_type, {})
    for name, (field, label) in _SUB_OPTIONS.items():
        value = getattr(options, name)
        if not value:
            continue
        accepted = sub_options.get(name)
        if accepted is None:
            raise OptionValidationError(
                f'{label} "{value}" is not supported for "{effective_type}". Please keep it empty.',
                field=field,
                value=value,
                accepted=(),
            )
        if value not in accepted:
            raise OptionValidationError(
                f'{label} "{value}" is not supported for "{effective_type}". '
                f"Supported types: {sorted(accepted)}",
                field=field,
                value=value,
                accepted=accepted,
            )


def parse_volume_size(value) -> Optional[float]:
    """Parse a volume size; None unless it is a positive number."""
    try:
        size = float(value)
    except (TypeError, ValueError):
        return None
    return size if size > 0 else None


def validate_volume_options(offering: Offering, options: PricingOptions) -> None:
    """
    Validate volume options: region, size, volume type and storage type.

    Raises:
        OptionValidationError: If any volume option is missing or not supported
    """
    if not options.region:
        raise OptionValidationError("Missing region", field="region", value=options.region)
    if parse_volume_size(options.volume_size) is None:
        raise OptionValidationError(
            f'Unable to parse volume units "{options.volume_size}". Must be a positive number.',
            field="volumeSize",
            value=options.volume_size,
        )

    volume_types = VOLUME_CAPABILITIES[offering]
    if options.volume_type not in volume_types:
        raise OptionValidationError(
            f'Volume Type "{options.volume_type}" is not supported for "{offering.product}". '
            f"Supported types: {sorted(volume_types)}",
            field="volumeType",
            value=options.volume_type,
            accepted=volume_types,
        )

    storage_types = volume_types[options.volume_type]
    storage_type = options.storage_type
    if storage_type and not storage_types:
        raise OptionValidationError(
            f'Storage Type "{storage_type}" is not supported for "{options.volume_type}". Please keep it empty.',
            field="storageType",
            value=storage_type,
            accepted=(),
        )
    if storage_type and storage_type not in storage_types:
        raise OptionValidationError(
            f'Storage Type "{storage_type}" is not supported for "{options.volume_type}". '
            f"Supported types: {sorted(storage_types)}",
            field="storageType",
            value=storage_type,
            accepted=storage_types,
        )


def validate_options(provider: str, product: str, options: PricingOptions) -> Offering:
    """
    Validate a provider/product/options combination.

    Args:
        provider: Cloud provider
        product: Cloud product
        options: Request options (normalized here)

    Returns:
        The resolved Offering

    Raises:
        OptionValidationError: If anything is unsupported
    """
    offering = resolve_offering(provider, product)
    options = options.normalized()
    if offering.is_volume:
        validate_volume_options(offering, options)
    else:
        validate_instance_options(offering, options)
    return offering
