"""
API routes for pricing queries.
"""
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from cloudprice.core.errors import (
    AmbiguousMatchError,
    ConfigurationError,
    NoPriceAvailableError,
    OptionValidationError,
    PricingError,
    UpstreamError,
)
from cloudprice.services.price_resolver import monthly_cost
from cloudprice.services.pricing_service import get_pricing_service


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/pricing", tags=["pricing"])


class InstancePriceRequest(BaseModel):
    """Request model for a single instance price."""
    provider: str = Field(..., description="Cloud provider (aws, gcp, planetscale)")
    product: str = Field(..., description="Cloud product (ec2, compute, psdb)")
    instance_type: str = Field(..., description="Instance type (e.g., m5.xlarge)")
    options: Dict[str, Any] = Field(default_factory=dict, description="Pricing options (region, purchaseType, ...)")


class MatrixRequest(BaseModel):
    """Request model for a regional instance matrix."""
    provider: str = Field(default="aws", description="Cloud provider")
    product: str = Field(default="ec2", description="Cloud product")
    options: Dict[str, Any] = Field(default_factory=dict, description="Pricing options")


class VolumePriceRequest(BaseModel):
    """Request model for a volume price."""
    provider: str = Field(..., description="Cloud provider (aws, gcp)")
    product: str = Field(..., description="Volume product (ebs, gcs)")
    options: Dict[str, Any] = Field(default_factory=dict, description="Volume options (region, volumeType, ...)")


class ValidateRequest(BaseModel):
    """Request model for option validation."""
    provider: str = Field(..., description="Cloud provider")
    product: str = Field(..., description="Cloud product")
    options: Dict[str, Any] = Field(default_factory=dict, description="Options to validate")


class ManagedDbPriceRequest(BaseModel):
    """Request model for a managed-database cluster price."""
    instance_type: str = Field(..., description="Cluster SKU (e.g., PS_40)")
    region: str = Field(default="us-east", description="Managed-database region slug")
    data_size_gb: float = Field(default=10, description="Total data size in GB")
    shards: int = Field(default=1, description="Number of shards")
    extra_replicas: int = Field(default=0, description="Replicas beyond the baseline of 3")
    gateway_override: Optional[str] = Field(None, description="Gateway SKU replacing the default one")
    extra_gateway_replicas: int = Field(default=0, description="Gateways beyond the baseline of 3")


class PriceResponse(BaseModel):
    """Response model for a resolved price."""
    status: str
    hourly_cost: float
    monthly_cost: float


class MatrixResponse(BaseModel):
    """Response model for a regional matrix."""
    status: str
    rows: List[List[Any]]


def _to_http_exception(error: PricingError) -> HTTPException:
    """Map a pricing error to its HTTP status."""
    if isinstance(error, OptionValidationError):
        return HTTPException(
            status_code=400,
            detail={
                "message": str(error),
                "field": error.field,
                "value": error.value,
                "accepted": error.accepted,
            },
        )
    if isinstance(error, NoPriceAvailableError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, AmbiguousMatchError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, UpstreamError):
        logger.error(f"Upstream pricing failure: {error}")
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, ConfigurationError):
        logger.error(f"Pricing configuration error: {error}")
        return HTTPException(status_code=500, detail=str(error))
    return HTTPException(status_code=500, detail=f"Pricing failed: {error}")


def _price_response(hourly: float) -> PriceResponse:
    service = get_pricing_service()
    return PriceResponse(
        status="ok",
        hourly_cost=hourly,
        monthly_cost=monthly_cost(hourly, service.settings.hours_per_month),
    )


@router.post("/instance", response_model=PriceResponse)
def instance_price(request: InstancePriceRequest):
    """Resolve the hourly and monthly price of one instance type."""
    try:
        hourly = get_pricing_service().resolve_single_instance_price(
            request.provider, request.product, request.instance_type, request.options
        )
    except PricingError as error:
        raise _to_http_exception(error) from error
    return _price_response(hourly)


@router.post("/matrix", response_model=MatrixResponse)
def regional_matrix(request: MatrixRequest):
    """Price every candidate instance in a region."""
    try:
        rows = get_pricing_service().resolve_regional_matrix(request.provider, request.product, request.options)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return MatrixResponse(status="ok", rows=rows)


@router.post("/volume", response_model=PriceResponse)
def volume_price(request: VolumePriceRequest):
    """Resolve the hourly and monthly price of a volume."""
    try:
        hourly = get_pricing_service().resolve_volume_price(request.provider, request.product, request.options)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return _price_response(hourly)


@router.post("/validate")
def validate(request: ValidateRequest):
    """Validate a provider/product/options combination without fetching."""
    try:
        offering = get_pricing_service().validate_options(request.provider, request.product, request.options)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return {"status": "ok", "provider": offering.provider, "product": offering.product}


@router.get("/psdb/regions")
def psdb_regions(cloud_provider: str = Query(default="aws")):
    """Managed-database region slugs for a cloud provider."""
    try:
        regions = get_pricing_service().psdb_regions(cloud_provider)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return {"status": "ok", "regions": regions}


@router.get("/psdb/skus")
def psdb_skus(region: str = Query(default="us-east")):
    """Managed-database cluster SKU names in a region."""
    try:
        skus = get_pricing_service().psdb_skus(region)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return {"status": "ok", "skus": skus}


@router.post("/psdb/instance", response_model=PriceResponse)
def psdb_instance_price(request: ManagedDbPriceRequest):
    """Price a managed-database cluster."""
    try:
        hourly = get_pricing_service().psdb_instance_price(
            request.instance_type,
            region=request.region,
            data_size_gb=request.data_size_gb,
            shards=request.shards,
            extra_replicas=request.extra_replicas,
            gateway_override=request.gateway_override,
            extra_gateway_replicas=request.extra_gateway_replicas,
        )
    except PricingError as error:
        raise _to_http_exception(error) from error
    return _price_response(hourly)


@router.get("/psdb/managed/tablet", response_model=PriceResponse)
def managed_tablet_fee(instance_type: str, extra_replicas: int = 0):
    """Hourly managed-service fee for a cluster's tablets."""
    try:
        hourly = get_pricing_service().managed_tablet_hourly(instance_type, extra_replicas)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return _price_response(hourly)


@router.get("/psdb/managed/gateway", response_model=PriceResponse)
def managed_gateway_fee(name: str, extra_replicas: int = 0):
    """Hourly managed-service fee for gateways (instance type or VTG SKU)."""
    try:
        hourly = get_pricing_service().managed_gateway_hourly(name, extra_replicas)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return _price_response(hourly)


@router.get("/psdb/managed/storage", response_model=PriceResponse)
def managed_storage_fee(num_gb: float, instance_type: str = "PS_40"):
    """Hourly managed-service storage fee."""
    try:
        hourly = get_pricing_service().managed_storage_hourly(num_gb, instance_type)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return _price_response(hourly)


@router.get("/psdb/managed/class/{instance_class}", response_model=PriceResponse)
def managed_class_fee(instance_class: str):
    """Hourly managed-service fee per vCPU for a tier tag."""
    try:
        hourly = get_pricing_service().managed_cost_by_class_hourly(instance_class)
    except PricingError as error:
        raise _to_http_exception(error) from error
    return _price_response(hourly)


@router.get("/gcp/volume-options")
def gcp_volume_options(machine_type: str):
    """Allowed local SSD counts for a GCP machine type."""
    return {"status": "ok", "options": get_pricing_service().gcp_volume_options(machine_type)}
