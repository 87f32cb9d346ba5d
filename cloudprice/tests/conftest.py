"""
Shared pytest fixtures for pricing tests.
"""

import sys
import os
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

# Set minimal environment variables for testing
os.environ.setdefault('INFRACOST_API_KEY', 'test_api_key')
os.environ.setdefault('AWS_EC2_INSTANCE_FAMILY_FILTER', 'm5,r5')
os.environ.setdefault('AWS_EC2_INSTANCE_SIZE_FILTER', 'large,xlarge')
os.environ.setdefault('GCP_COMPUTE_INSTANCE_FAMILY_FILTER', 'n2')
os.environ.setdefault('GCP_COMPUTE_INSTANCE_SIZE_FILTER', 'standard-4,highmem-4')

import pytest
from fastapi.testclient import TestClient
from cloudprice.core.config import Settings
from cloudprice.main import app
from cloudprice.services.pricing_service import PricingService
from cloudprice.tests.fakes import (
    CLUSTER_SKUS,
    GATEWAY_SKUS,
    PSDB_REGIONS,
    FakeCatalogClient,
    FakePricingClient,
    ec2_responder,
)


@pytest.fixture
def settings():
    """Settings with small candidate filters."""
    return Settings(
        pricing_api_key='test_api_key',
        aws_ec2_family_filter=('m5', 'r5'),
        aws_ec2_size_filter=('large', 'xlarge'),
        gcp_compute_family_filter=('n2',),
        gcp_compute_size_filter=('standard-4', 'highmem-4'),
    )


@pytest.fixture
def pricing_client():
    """Fake pricing client answering from the EC2 test catalog."""
    return FakePricingClient(ec2_responder)


@pytest.fixture
def catalog_client():
    """Fake managed-database catalog."""
    return FakeCatalogClient(
        regions=PSDB_REGIONS,
        cluster_skus=CLUSTER_SKUS,
        gateway_skus=GATEWAY_SKUS,
    )


@pytest.fixture
def service(settings, pricing_client, catalog_client):
    """Pricing service wired to fake upstreams."""
    return PricingService(settings, pricing_client=pricing_client, catalog_client=catalog_client)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)
