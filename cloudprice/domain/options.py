"""
Request options shared by every pricing query.
"""
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from cloudprice.core.errors import OptionValidationError


# Accepted input spellings -> PricingOptions field name
_ALIASES: Dict[str, str] = {
    "region": "region",
    "purchaseType": "purchase_type",
    "purchaseTerm": "purchase_term",
    "offeringClass": "offering_class",
    "paymentOption": "payment_option",
    "platform": "platform",
    "cudType": "cud_type",
    "volumeType": "volume_type",
    "storageType": "storage_type",
    "volumeSize": "volume_size",
    "dataSizeGB": "data_size_gb",
    "shards": "shards",
    "extraReplicas": "extra_replicas",
    "extraGatewayReplicas": "extra_gateway_replicas",
    "gatewayOverridePrice": "gateway_override_price",
}

_STRING_FIELDS = (
    "region",
    "purchase_type",
    "purchase_term",
    "offering_class",
    "payment_option",
    "platform",
    "cud_type",
    "volume_type",
    "storage_type",
)


# Numeric field -> (request name, cast, default, minimum)
_NUMERIC_FIELDS: Dict[str, Tuple[str, Callable[[Any], Any], Any, float]] = {
    "data_size_gb": ("dataSizeGB", float, 10.0, 0),
    "shards": ("shards", int, 1, 1),
    "extra_replicas": ("extraReplicas", int, 0, 0),
    "extra_gateway_replicas": ("extraGatewayReplicas", int, 0, 0),
    "gateway_override_price": ("gatewayOverridePrice", float, 0.0, 0),
}


def normalize_option(value: Any) -> Any:
    """Lower-case and trim string values; empty strings become unset (None)."""
    if isinstance(value, str):
        value = value.strip().lower()
        return value or None
    return value


def parse_numeric_option(name: str, value: Any) -> Any:
    """
    Parse a numeric option, falling back to its default when unset.

    Raises:
        OptionValidationError: If the value is not a number or is below the field's minimum
    """
    field_name, cast, default, minimum = _NUMERIC_FIELDS[name]
    if value is None or value == "":
        return default
    try:
        number = cast(value)
    except (TypeError, ValueError) as error:
        raise OptionValidationError(
            f'Unable to parse {field_name} "{value}". Must be a number.',
            field=field_name,
            value=value,
        ) from error
    if number < minimum:
        raise OptionValidationError(
            f'{field_name} "{value}" must be at least {minimum}.',
            field=field_name,
            value=value,
        )
    return number


@dataclass(frozen=True)
class PricingOptions:
    """Options recognised by the pricing operations."""
    region: Optional[str] = None
    purchase_type: Optional[str] = None
    purchase_term: Optional[str] = None
    offering_class: Optional[str] = None
    payment_option: Optional[str] = None
    platform: Optional[str] = None
    cud_type: Optional[str] = None
    volume_type: Optional[str] = None
    storage_type: Optional[str] = None
    volume_size: Optional[Any] = None
    data_size_gb: float = 10.0
    shards: int = 1
    extra_replicas: int = 0
    extra_gateway_replicas: int = 0
    gateway_override_price: float = 0.0

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> "PricingOptions":
        """
        Build options from a mapping using either camelCase or snake_case keys.

        String values are lower-cased and empty strings are treated as unset.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in (values or {}).items():
            name = _ALIASES.get(key, key)
            if name not in known:
                continue
            kwargs[name] = normalize_option(value) if name in _STRING_FIELDS else value

        for name in _NUMERIC_FIELDS:
            kwargs[name] = parse_numeric_option(name, kwargs.get(name))
        return cls(**kwargs)

    def normalized(self) -> "PricingOptions":
        """
        Return a copy with empty-string string options normalized to unset
        and numeric options parsed.

        Raises:
            OptionValidationError: If a numeric option is invalid
        """
        changes = {name: normalize_option(getattr(self, name)) for name in _STRING_FIELDS}
        changes.update({name: parse_numeric_option(name, getattr(self, name)) for name in _NUMERIC_FIELDS})
        return replace(self, **changes)

    def with_defaults(self, **defaults: Any) -> "PricingOptions":
        """Return a copy where the given fields are filled in only if unset."""
        changes = {name: value for name, value in defaults.items() if getattr(self, name) is None}
        return replace(self, **changes) if changes else self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self)}
