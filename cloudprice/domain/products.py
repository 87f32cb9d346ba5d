"""
Domain models for normalized pricing products.
Every provider adapter produces these; downstream code never sees raw records.
"""
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum


class InstanceClass(str, Enum):
    """Internal tier tag, independent of provider-native family names."""
    GENERAL = "general"
    MEMORY = "memory"
    COMPUTE = "compute"
    METAL = "metal"


@dataclass
class PricingBag:
    """Hourly prices for one region/platform, one field per purchase option."""
    ondemand: Optional[float] = None
    reserved: Dict[str, float] = field(default_factory=dict)  # AWS: "yrTerm1Standard.noUpfront" -> price
    committed: Dict[str, float] = field(default_factory=dict)  # GCP: "cud-flexi-1y" -> price
    preemptible: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ondemand": self.ondemand,
            "reserved": dict(self.reserved),
            "committed": dict(self.committed),
            "preemptible": self.preemptible,
        }


@dataclass(frozen=True)
class ManagedDbRates:
    """Monthly rates of a managed-database cluster SKU."""
    rate: float  # 3-replica baseline, gateways included
    replica_rate: float
    default_gateway: Optional[str] = None
    default_gateway_rate: float = 0.0


@dataclass(frozen=True)
class Product:
    """A priced instance in the unified schema."""
    instance_type: str
    instance_family: str
    instance_size: str
    vcpu: float
    memory: float  # GB
    ps_instance_class: InstanceClass
    pricing: Dict[str, Dict[str, PricingBag]] = field(default_factory=dict)
    onboard_storage: int = 0  # GB of local/instance storage
    provider_instance_type: Optional[str] = None
    resolved_instance_type: Optional[str] = None
    managed_rates: Optional[ManagedDbRates] = None

    def pricing_bag(self, region: Optional[str], platform: Optional[str]) -> Optional[PricingBag]:
        """Return the pricing bag for a region/platform, or None if absent."""
        return self.pricing.get(region or "", {}).get(platform or "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "instance_type": self.instance_type,
            "instance_family": self.instance_family,
            "instance_size": self.instance_size,
            "vCPU": self.vcpu,
            "memory": self.memory,
            "onboard_storage": self.onboard_storage,
            "ps_instance_class": self.ps_instance_class.value,
            "provider_instance_type": self.provider_instance_type,
            "pricing": {
                region: {platform: bag.to_dict() for platform, bag in platforms.items()}
                for region, platforms in self.pricing.items()
            },
        }


@dataclass(frozen=True)
class VolumeProduct:
    """Block storage prices for one volume type in one region (USD per month)."""
    region: str
    volume_type: str
    price_per_gb_month: Optional[float] = None
    price_per_iops_month: Optional[float] = None
    price_per_tier1_iops_month: Optional[float] = None
    price_per_tier2_iops_month: Optional[float] = None
    price_per_tier3_iops_month: Optional[float] = None


@dataclass(frozen=True)
class LocalSsdProduct:
    """Local SSD price for one region."""
    region: str
    price_per_tb_month: float
    from_upstream: bool = True


@dataclass
class AdapterResult:
    """Products produced by an adapter plus the items it had to drop on upstream failure."""
    products: List[Any] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)  # item id -> error message

    def extend(self, other: "AdapterResult") -> None:
        self.products.extend(other.products)
        self.failures.update(other.failures)
