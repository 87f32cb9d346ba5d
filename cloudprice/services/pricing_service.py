"""
Pricing service.
Public query operations: single instance price, regional matrix, volume price
and option validation, plus the managed-database helpers.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
import logging

from cloudprice.core.config import Settings, load_settings
from cloudprice.core.errors import AmbiguousMatchError, NoPriceAvailableError, OptionValidationError, PricingAPIError
from cloudprice.domain.offerings import Offering, resolve_offering
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import AdapterResult, InstanceClass, Product
from cloudprice.pricing.aws_ebs import AWSEBSAdapter
from cloudprice.pricing.aws_ec2 import AWSEC2Adapter
from cloudprice.pricing.base import ProductAdapter
from cloudprice.pricing.catalog_client import CatalogClient
from cloudprice.pricing.gcp_compute import GCPComputeAdapter, local_ssd_volume_options
from cloudprice.pricing.gcp_local_ssd import GCPLocalSSDAdapter
from cloudprice.pricing.graphql_client import PricingGraphQLClient
from cloudprice.pricing.psdb import PSDBAdapter
from cloudprice.services.candidates import generate_candidates
from cloudprice.services.matrix_builder import build_matrix
from cloudprice.services.option_validator import validate_options
from cloudprice.services.price_resolver import resolve_hourly_price, resolve_volume_hourly_price


logger = logging.getLogger(__name__)


DEFAULT_REGIONS: Dict[Offering, str] = {
    Offering.AWS_EC2: "us-east-1",
    Offering.GCP_COMPUTE: "us-central1",
    Offering.PSDB: "us-east",
}

# Cloud a managed-database region runs on -> offering used for enrichment
CLOUD_OFFERINGS: Dict[str, Offering] = {
    "aws": Offering.AWS_EC2,
    "gcp": Offering.GCP_COMPUTE,
}

BASE_REPLICAS = 3
DEFAULT_PSDB_REGION = "us-east"
DEFAULT_STORAGE_INSTANCE = "PS_40"

OptionsInput = Union[PricingOptions, Mapping[str, Any], None]


def _to_options(options: OptionsInput) -> PricingOptions:
    if isinstance(options, PricingOptions):
        return options.normalized()
    return PricingOptions.from_mapping(options)


class PricingService:
    """Facade over adapters, resolver and matrix builder."""

    def __init__(
        self,
        settings: Settings,
        pricing_client: Optional[PricingGraphQLClient] = None,
        catalog_client: Optional[CatalogClient] = None
    ):
        """
        Initialize pricing service.

        Args:
            settings: Application settings
            pricing_client: GraphQL pricing client (creates new if None)
            catalog_client: Managed-database catalog client (creates new if None)
        """
        self.settings = settings
        self.pricing_client = pricing_client or PricingGraphQLClient(settings)
        self.catalog_client = catalog_client or CatalogClient(settings)
        self.adapters: Dict[Offering, ProductAdapter] = {
            Offering.AWS_EC2: AWSEC2Adapter(self.pricing_client, settings),
            Offering.AWS_EBS: AWSEBSAdapter(self.pricing_client, settings),
            Offering.GCP_COMPUTE: GCPComputeAdapter(self.pricing_client, settings),
            Offering.GCP_LOCAL_SSD: GCPLocalSSDAdapter(self.pricing_client, settings),
            Offering.PSDB: PSDBAdapter(self.catalog_client, self._cloud_products),
        }

    def _prepare(self, provider: str, product: str, options: OptionsInput, volume: bool = False):
        """Resolve the offering, check it is the expected kind, validate and fill defaults."""
        options = _to_options(options)
        offering = resolve_offering(provider, product)
        if offering.is_volume != volume:
            kind = "a volume" if volume else "an instance"
            raise OptionValidationError(
                f'"{offering.product}" is not {kind} product for {offering.provider}.',
                field="product",
                value=offering.product,
                accepted=[o.product for o in Offering if o.provider == offering.provider and o.is_volume == volume],
            )
        validate_options(provider, product, options)

        if volume:
            if offering == Offering.AWS_EBS:
                options = options.with_defaults(storage_type="storage")
            return offering, options
        defaults: Dict[str, Any] = {"region": DEFAULT_REGIONS[offering]}
        if offering in (Offering.AWS_EC2, Offering.GCP_COMPUTE):
            defaults.update(platform="linux", purchase_type="ondemand")
        return offering, options.with_defaults(**defaults)

    def fetch_products(
        self,
        offering: Offering,
        instance_types: Sequence[str],
        options: PricingOptions
    ) -> AdapterResult:
        """
        Fetch normalized products for an offering.

        An empty instance_types list means every candidate from the configured
        family/size filters (managed-database SKUs are always enumerated by
        the catalog instead).

        Raises:
            ConfigurationError: If candidates are needed but the filters are empty
        """
        items = list(instance_types)
        if not items and offering in (Offering.AWS_EC2, Offering.GCP_COMPUTE):
            items = generate_candidates(self.settings, offering)
            logger.info(f"Generated {len(items)} candidate instance types for {offering.product}")
        return self.adapters[offering].fetch(items, options)

    def _cloud_products(self, cloud_provider: str, cloud_region: str) -> List[Product]:
        offering = CLOUD_OFFERINGS.get(cloud_provider)
        if offering is None:
            logger.warning(f"No instance catalog for cloud provider '{cloud_provider}'")
            return []
        options = PricingOptions(region=cloud_region, platform="linux", purchase_type="ondemand")
        return self.fetch_products(offering, [], options).products

    def validate_options(self, provider: str, product: str, options: OptionsInput = None) -> Offering:
        """
        Validate a provider/product/options combination.

        Raises:
            OptionValidationError: If anything is unsupported
        """
        return validate_options(provider, product, _to_options(options))

    def resolve_single_instance_price(
        self,
        provider: str,
        product: str,
        instance_type: str,
        options: OptionsInput = None
    ) -> float:
        """
        Resolve the hourly price of one instance type.

        Args:
            provider: Cloud provider (e.g., 'aws')
            product: Cloud product (e.g., 'ec2')
            instance_type: Instance type (e.g., 'm5.xlarge')
            options: Request options

        Returns:
            Hourly price in USD

        Raises:
            OptionValidationError: If the request is not supported
            PricingAPIError / CatalogAPIError: If the upstream lookup failed
            NoPriceAvailableError: If no price satisfies the request
            AmbiguousMatchError: If more than one product matched
        """
        if not instance_type:
            raise OptionValidationError("Missing instanceType", field="instanceType", value=instance_type)
        offering, options = self._prepare(provider, product, options)

        result = self.fetch_products(offering, [instance_type], options)
        if not result.products:
            if result.failures:
                raise PricingAPIError(
                    f"Failed to fetch pricing for {instance_type}: {'; '.join(result.failures.values())}"
                )
            raise NoPriceAvailableError(
                f"No data returned for {instance_type}. Please check that the instance type is spelled "
                f"correctly, that it exists in region {options.region}, and that the pricing API key is valid."
            )
        if len(result.products) > 1:
            raise AmbiguousMatchError(
                f"Search returned more than one product for {instance_type}. "
                f"Please check the instance type and try again."
            )

        price = resolve_hourly_price(offering, result.products[0], options, self.settings.hours_per_month)
        if price is None:
            raise NoPriceAvailableError(
                f"No price available for {instance_type} with purchase type "
                f"'{options.purchase_type or 'ondemand'}' in {options.region}. Please check your options."
            )
        return price

    def resolve_regional_matrix(
        self,
        provider: str = "aws",
        product: str = "ec2",
        options: OptionsInput = None
    ) -> List[List[Any]]:
        """
        Price every candidate product in a region.

        Returns:
            Header row followed by one row per priced product
        """
        offering, options = self._prepare(provider, product, options)
        result = self.fetch_products(offering, [], options)
        if result.failures:
            logger.warning(f"Matrix for {provider}/{product} omits {len(result.failures)} failed item(s)")
        return build_matrix(offering, result.products, options, self.settings.hours_per_month)

    def resolve_volume_price(self, provider: str, product: str, options: OptionsInput = None) -> float:
        """
        Resolve the hourly price of a volume.

        Raises:
            OptionValidationError: If the volume options are invalid
            PricingAPIError: If the upstream lookup failed
            NoPriceAvailableError: If no price satisfies the request
        """
        offering, options = self._prepare(provider, product, options, volume=True)
        result = self.adapters[offering].fetch([options.region], options)
        volumes = [
            volume for volume in result.products
            if getattr(volume, "volume_type", options.volume_type) == options.volume_type
        ]
        price = resolve_volume_hourly_price(volumes[0], options, self.settings.hours_per_month) if volumes else None
        if price is None:
            if result.failures:
                raise PricingAPIError(
                    f"Failed to fetch {options.volume_type} pricing in {options.region}: "
                    f"{'; '.join(result.failures.values())}"
                )
            raise NoPriceAvailableError(
                f"No price available for {options.volume_type} ({options.storage_type or 'storage'}) "
                f"in {options.region}."
            )
        return price

    # Managed-database helpers

    def psdb_regions(self, cloud_provider: str = "aws") -> List[str]:
        """Region slugs of the managed database on a cloud provider, in catalog order reversed."""
        cloud_provider = (cloud_provider or "").lower()
        return [
            region.get("slug") for region in reversed(self.catalog_client.fetch_regions())
            if (region.get("provider") or "").lower() == cloud_provider
        ]

    def psdb_skus(self, region: str = DEFAULT_PSDB_REGION) -> List[str]:
        """Cluster SKU names available in a region."""
        result = self.adapters[Offering.PSDB].fetch([], PricingOptions(region=region), enrich=False)
        return [product.instance_type for product in result.products]

    def _psdb_product(self, instance_type: str, region: str = DEFAULT_PSDB_REGION) -> Product:
        result = self.adapters[Offering.PSDB].fetch([instance_type], PricingOptions(region=region), enrich=False)
        if not result.products:
            raise NoPriceAvailableError(f"Unknown managed-database instance type: {instance_type}")
        return result.products[0]

    def _gateway_sku(self, gateway_name: str) -> Dict[str, Any]:
        gateways = self.catalog_client.fetch_gateway_skus()
        for gateway in gateways:
            if gateway.get("name") == gateway_name:
                return gateway
        raise OptionValidationError(
            f"Not a valid vtgate SKU name: {gateway_name}",
            field="gatewayOverride",
            value=gateway_name,
            accepted=[gateway.get("name") for gateway in gateways if gateway.get("name")],
        )

    def gateway_override_price(self, gateway_name: str) -> float:
        """
        Monthly rate of a gateway SKU, used as a gateway price override.

        Raises:
            OptionValidationError: If the SKU does not exist
        """
        return float(self._gateway_sku(gateway_name).get("rate") or 0)

    def psdb_instance_price(
        self,
        instance_type: str,
        region: str = DEFAULT_PSDB_REGION,
        data_size_gb: float = 10,
        shards: int = 1,
        extra_replicas: int = 0,
        gateway_override: Optional[str] = None,
        extra_gateway_replicas: int = 0
    ) -> float:
        """Hourly price of a managed-database cluster (3 replicas and default gateways included)."""
        override_price = self.gateway_override_price(gateway_override) if gateway_override else 0.0
        options = PricingOptions(
            region=region,
            data_size_gb=data_size_gb,
            shards=shards,
            extra_replicas=extra_replicas,
            extra_gateway_replicas=extra_gateway_replicas,
            gateway_override_price=override_price,
        )
        return self.resolve_single_instance_price("planetscale", "psdb", instance_type, options)

    def managed_tablet_hourly(self, instance_type: str, extra_replicas: int = 0) -> float:
        """Hourly managed-service fee for an instance type's tablets (gateways excluded)."""
        product = self._psdb_product(instance_type)
        rate = self.settings.managed_prices[product.ps_instance_class.value] / self.settings.hours_per_month
        return rate * float(product.vcpu) * (BASE_REPLICAS + extra_replicas)

    def managed_gateway_hourly(self, instance_or_gateway: str, extra_replicas: int = 0) -> float:
        """
        Hourly managed-service fee for gateways.

        Accepts either a gateway SKU ('VTG_...') or an instance type, in which
        case the instance type's default gateway is used.
        """
        gateway_name = instance_or_gateway
        if not gateway_name.startswith("VTG"):
            rates = self._psdb_product(instance_or_gateway).managed_rates
            gateway_name = rates.default_gateway if rates else None
            if not gateway_name:
                raise NoPriceAvailableError(f"No default gateway for {instance_or_gateway}")
        cpu = float(self._gateway_sku(gateway_name).get("cpu") or 0)
        rate = self.settings.managed_prices["compute"] / self.settings.hours_per_month
        return rate * cpu * (BASE_REPLICAS + extra_replicas)

    def managed_storage_hourly(self, num_gb: float, instance_type: str = DEFAULT_STORAGE_INSTANCE) -> float:
        """Hourly managed-service storage fee for one replica's worth of data (0 on metal)."""
        product = self._psdb_product(instance_type)
        if product.ps_instance_class == InstanceClass.METAL:
            return 0.0
        return self.settings.managed_prices["TB"] / self.settings.hours_per_month * (float(num_gb) / 1024)

    def managed_cost_by_class_hourly(self, instance_class: str) -> float:
        """
        Hourly managed-service fee per vCPU for a tier tag.

        Raises:
            OptionValidationError: If the tier tag is unknown
        """
        classes = [tag.value for tag in InstanceClass]
        if instance_class not in classes:
            raise OptionValidationError(
                f"Instance Class must be one of {classes}",
                field="instanceClass",
                value=instance_class,
                accepted=classes,
            )
        return self.settings.managed_prices[instance_class] / self.settings.hours_per_month

    def gcp_volume_options(self, machine_type: str) -> List[int]:
        """Allowed local SSD counts for a GCP machine type."""
        return local_ssd_volume_options(machine_type)

    def close(self) -> None:
        """Close upstream HTTP clients."""
        self.pricing_client.close()
        self.catalog_client.close()


# Global singleton instance
_pricing_service: Optional[PricingService] = None


def get_pricing_service() -> PricingService:
    """
    Get the global pricing service instance.

    Returns:
        PricingService instance
    """
    global _pricing_service
    if _pricing_service is None:
        _pricing_service = PricingService(load_settings())
    return _pricing_service
