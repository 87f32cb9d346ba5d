"""
Tests for provider adapters.
"""

import pytest

from cloudprice.core.errors import CatalogAPIError, PricingAPIError
from cloudprice.domain.options import PricingOptions
from cloudprice.domain.products import InstanceClass, Product
from cloudprice.pricing.aws_ebs import AWSEBSAdapter
from cloudprice.pricing.aws_ec2 import AWSEC2Adapter, classify_ec2, parse_instance_storage
from cloudprice.pricing.base import build_pricing_bag, first_priced_record, price_filter_for
from cloudprice.pricing.gcp_compute import (
    GCPComputeAdapter,
    classify_machine_type,
    local_ssd_volume_options,
    parse_machine_type,
)
from cloudprice.pricing.gcp_local_ssd import FALLBACK_PRICE_PER_TB_MONTH, GCPLocalSSDAdapter
from cloudprice.pricing.psdb import PSDBAdapter, bytes_to_gb, classify_cluster_sku, cloud_location
from cloudprice.tests.fakes import (
    CLUSTER_SKUS,
    PSDB_REGIONS,
    FakeCatalogClient,
    FakePricingClient,
    ec2_record,
    ec2_responder,
    gcp_record,
    make_record,
    price_entry,
)


EC2_OPTIONS = PricingOptions(region='us-east-1', platform='linux', purchase_type='ondemand')
GCP_OPTIONS = PricingOptions(region='us-central1', platform='linux', purchase_type='ondemand')


# Record parsing

def test_first_priced_record_skips_zero_prices():
    """The first candidate with a positive price wins."""
    records = [
        make_record({}, [price_entry(0)]),
        make_record({}, []),
        make_record({'id': 'b'}, [price_entry(0.2)]),
        make_record({'id': 'c'}, [price_entry(0.3)]),
    ]
    assert first_priced_record(records)['attributes'] == [{'key': 'id', 'value': 'b'}]
    assert first_priced_record([make_record({}, [price_entry(0)])]) is None


def test_price_entries_are_attributed():
    """Each entry is filed under the option it declares."""
    options = PricingOptions(purchase_type='reserved', purchase_term='3yr', offering_class='convertible')
    bag = build_pricing_bag([
        price_entry(0.192),
        price_entry(0.07, 'reserved', '3yr', 'convertible', 'All Upfront'),
        price_entry(0.09, 'reserved', '1yr', 'standard', 'No Upfront'),
    ], options)
    assert bag.ondemand == 0.192
    assert bag.reserved == {'yrTerm3Convertible.allUpfront': 0.07, 'yrTerm1Standard.noUpfront': 0.09}


def test_reserved_price_filter_is_fully_qualified():
    """Reserved queries always carry term, class and payment."""
    assert price_filter_for(PricingOptions(purchase_type='reserved')) == {
        'purchaseOption': 'reserved',
        'termLength': '1yr',
        'termOfferingClass': 'standard',
        'termPurchaseOption': 'No Upfront',
    }
    assert price_filter_for(PricingOptions(purchase_type='committed-use')) == {'purchaseOption': 'on_demand'}


# AWS EC2

def test_parse_instance_storage():
    """Instance storage is count x size."""
    assert parse_instance_storage('EBS only') == 0
    assert parse_instance_storage('2 x 1900 NVMe SSD') == 3800
    assert parse_instance_storage(None) == 0


@pytest.mark.parametrize('family,storage,expected', [
    ('c5', 0, InstanceClass.COMPUTE),
    ('r5', 0, InstanceClass.MEMORY),
    ('m5', 0, InstanceClass.GENERAL),
    ('i3', 0, InstanceClass.METAL),
    ('x2', 0, InstanceClass.GENERAL),
    ('m5d', 300, InstanceClass.METAL),
])
def test_classify_ec2(family, storage, expected):
    """Leading letter decides the tier; local storage forces metal."""
    assert classify_ec2(family, storage) == expected


def test_ec2_product_normalized(settings):
    """An EC2 record becomes a unified product."""
    client = FakePricingClient(lambda selection: [ec2_record('m5d.large', 2, 8, 0.113, '1 x 75 NVMe SSD')])
    result = AWSEC2Adapter(client, settings).fetch(['m5d.large'], EC2_OPTIONS)

    product = result.products[0]
    assert product.instance_family == 'm5d'
    assert product.instance_size == 'large'
    assert product.vcpu == 2
    assert product.memory == 8
    assert product.onboard_storage == 75
    assert product.ps_instance_class == InstanceClass.METAL
    assert product.pricing_bag('us-east-1', 'linux').ondemand == 0.113


def test_ec2_query_filters(settings):
    """The query pins OS, tenancy and region."""
    client = FakePricingClient(ec2_responder)
    AWSEC2Adapter(client, settings).fetch(['m5.large'], EC2_OPTIONS)
    query = client.queries[0]
    assert '{ key: "operatingSystem", value: "Linux" }' in query
    assert '{ key: "tenancy", value: "Shared" }' in query
    assert 'region: "us-east-1"' in query
    assert 'productFamily: "Compute Instance"' in query


def test_ec2_few_types_are_queried_individually(settings):
    """Up to three types are queried one by one."""
    client = FakePricingClient(ec2_responder)
    result = AWSEC2Adapter(client, settings).fetch(['m5.large', 'm5.xlarge', 'r5.large'], EC2_OPTIONS)
    assert len(client.queries) == 3
    assert len(result.products) == 3


def test_ec2_many_types_are_batched(settings):
    """More than three types go out in one aliased query."""
    client = FakePricingClient(ec2_responder)
    types = ['m5.large', 'm5.xlarge', 'r5.large', 'r5.xlarge']
    result = AWSEC2Adapter(client, settings).fetch(types, EC2_OPTIONS)
    assert len(client.queries) == 1
    assert 'inst_m5_large: products(' in client.queries[0]
    assert [product.instance_type for product in result.products] == types


def test_ec2_batches_are_chunked(settings):
    """Batches hold at most ten types."""
    client = FakePricingClient(lambda selection: [])
    types = [f'm5.size{index}' for index in range(25)]
    AWSEC2Adapter(client, settings).fetch(types, EC2_OPTIONS)
    assert len(client.queries) == 3


def test_ec2_batch_failure_falls_back_to_individual(settings):
    """A failed batch is retried one type at a time."""
    def responder(selection):
        if selection.alias:
            raise PricingAPIError('batch rejected')
        return ec2_responder(selection)

    client = FakePricingClient(responder)
    types = ['m5.large', 'm5.xlarge', 'r5.large', 'r5.xlarge']
    result = AWSEC2Adapter(client, settings).fetch(types, EC2_OPTIONS)
    assert len(client.queries) == 5
    assert len(result.products) == 4
    assert result.failures == {}


def test_ec2_upstream_failure_is_recorded(settings):
    """An upstream failure drops the item and records why."""
    def responder(selection):
        raise PricingAPIError('timeout')

    result = AWSEC2Adapter(FakePricingClient(responder), settings).fetch(['m5.large'], EC2_OPTIONS)
    assert result.products == []
    assert 'timeout' in result.failures['m5.large']


def test_ec2_missing_type_is_not_a_failure(settings):
    """No data for a type is not an upstream failure."""
    result = AWSEC2Adapter(FakePricingClient(ec2_responder), settings).fetch(['z9.huge'], EC2_OPTIONS)
    assert result.products == []
    assert result.failures == {}


# GCP Compute

def test_gcp_committed_price_derived():
    """1yr flexi is 18% off on-demand."""
    client = FakePricingClient(lambda selection: [gcp_record('n2-standard-4', 1.0)])
    result = GCPComputeAdapter(client, None).fetch(['n2-standard-4'], GCP_OPTIONS)
    assert 'productFamily: "Compute Instance"' in client.queries[0]
    bag = result.products[0].pricing_bag('us-central1', 'linux')
    assert bag.committed['cud-flexi-1y'] == pytest.approx(0.82)
    assert bag.committed['cud-resource-1y'] == pytest.approx(0.63)
    assert bag.committed['cud-flexi-3y'] == pytest.approx(0.54)
    assert bag.committed['cud-resource-3y'] == pytest.approx(0.45)


def test_gcp_shape_from_name():
    """vCPU and memory come from the name when attributes are absent."""
    assert parse_machine_type('n2-highmem-8', {}) == (8.0, 64.0)
    assert parse_machine_type('n2-standard-4', {}) == (4.0, 16.0)
    assert parse_machine_type('e2-micro', {}) == (0, 0.0)
    assert parse_machine_type('custom', {'vCPUs': '6', 'memory': '24 GB'}) == (6.0, 24.0)


@pytest.mark.parametrize('machine_type,expected', [
    ('n2-standard-4', InstanceClass.GENERAL),
    ('n2-highmem-4', InstanceClass.MEMORY),
    ('c2-highcpu-8', InstanceClass.COMPUTE),
    ('n2d-standard-16', InstanceClass.METAL),
    ('z3-highmem-88', InstanceClass.METAL),
    ('e2-micro', InstanceClass.GENERAL),
])
def test_classify_machine_type(machine_type, expected):
    """Middle token decides the tier; n2d and z3 are metal."""
    assert classify_machine_type(machine_type) == expected


def test_gcp_metal_gets_local_ssd():
    """Metal types carry 375 GB per assumed SSD unit."""
    client = FakePricingClient(lambda selection: [gcp_record('n2d-standard-16', 0.8)])
    product = GCPComputeAdapter(client, None).fetch(['n2d-standard-16'], GCP_OPTIONS).products[0]
    assert product.onboard_storage == 750


def test_gcp_z3_tries_local_ssd_variants():
    """A z3 type with no data is retried with local SSD suffixes."""
    def responder(selection):
        assert selection.product_family == 'Compute Instance'
        if selection.attributes['machineType'] == 'z3-highmem-88-highlssd':
            return [gcp_record('z3-highmem-88-highlssd', 12.0)]
        return []

    client = FakePricingClient(responder)
    product = GCPComputeAdapter(client, None).fetch(['z3-highmem-88'], GCP_OPTIONS).products[0]
    assert len(client.queries) == 2
    assert product.instance_type == 'z3-highmem-88'
    assert product.resolved_instance_type == 'z3-highmem-88-highlssd'
    assert product.vcpu == 88


def test_gcp_batch_retries_missing_types():
    """Types a batch returned nothing for are retried individually."""
    def responder(selection):
        machine_type = selection.attributes['machineType']
        if machine_type == 'z3-highmem-88-lssd':
            return [gcp_record(machine_type, 12.0)]
        if machine_type.startswith('z3'):
            return []
        return [gcp_record(machine_type, 0.2)]

    client = FakePricingClient(responder)
    types = ['n2-standard-4', 'n2-standard-8', 'n2-highmem-4', 'z3-highmem-88']
    result = GCPComputeAdapter(client, None).fetch(types, GCP_OPTIONS)
    assert len(result.products) == 4
    assert result.products[-1].resolved_instance_type == 'z3-highmem-88-lssd'


def test_local_ssd_volume_options():
    """Allowed SSD counts depend on the machine size."""
    assert local_ssd_volume_options('n2-standard-16') == [2, 4, 8, 16, 24]
    assert local_ssd_volume_options('n2-standard-4') == [1, 2, 4, 8, 16, 24]
    assert local_ssd_volume_options('c2d-standard-32') == [1, 2, 4, 8]


# AWS EBS

def _ebs_responder(storage=0.08, iops=0.005, fail_iops=False):
    def responder(selection):
        if selection.product_family == 'Storage':
            return [make_record({}, [price_entry(storage)])]
        if fail_iops:
            raise PricingAPIError('iops lookup failed')
        return [make_record({}, [price_entry(iops)])]
    return responder


def test_ebs_gp3_prices():
    """gp3 has storage and IOPS prices."""
    client = FakePricingClient(_ebs_responder())
    result = AWSEBSAdapter(client, None).fetch(['us-east-1'], PricingOptions(volume_type='gp3'))
    volume = result.products[0]
    assert volume.price_per_gb_month == 0.08
    assert volume.price_per_iops_month == 0.005
    assert len(client.queries) == 2
    assert '{ key: "group", value: "EBS IOPS" }' in client.queries[1]


def test_ebs_io2_tiers_share_base_price():
    """All io2 tiers use the base IOPS price."""
    client = FakePricingClient(_ebs_responder(storage=0.125, iops=0.065))
    volume = AWSEBSAdapter(client, None).fetch(['us-east-1'], PricingOptions(volume_type='io2')).products[0]
    assert volume.price_per_tier1_iops_month == 0.065
    assert volume.price_per_tier3_iops_month == 0.065


def test_ebs_all_types_when_unset():
    """Every supported type is fetched when none is requested."""
    client = FakePricingClient(_ebs_responder())
    result = AWSEBSAdapter(client, None).fetch(['us-east-1'], PricingOptions())
    assert [volume.volume_type for volume in result.products] == ['gp3', 'gp2', 'io2', 'io1']


def test_ebs_iops_failure_keeps_storage_price():
    """A failed IOPS lookup keeps the storage price and records the failure."""
    client = FakePricingClient(_ebs_responder(fail_iops=True))
    result = AWSEBSAdapter(client, None).fetch(['us-east-1'], PricingOptions(volume_type='gp3'))
    volume = result.products[0]
    assert volume.price_per_gb_month == 0.08
    assert volume.price_per_iops_month is None
    assert 'us-east-1/gp3' in result.failures


def test_ebs_storage_failure_drops_type():
    """A failed storage lookup drops the volume type."""
    def responder(selection):
        raise PricingAPIError('down')

    result = AWSEBSAdapter(FakePricingClient(responder), None).fetch(['us-east-1'], PricingOptions(volume_type='gp2'))
    assert result.products == []
    assert result.failures == {'us-east-1/gp2': 'down'}


# GCP local SSD

def test_local_ssd_generic_price():
    """The generic SSD description is selected and converted to TB."""
    def responder(selection):
        return [
            make_record({'description': 'SSD backed Local Storage attached to Preemptible VMs'}, [price_entry(0.048)]),
            make_record({'description': 'SSD backed Local Storage'}, [price_entry(0.08)]),
        ]

    product = GCPLocalSSDAdapter(FakePricingClient(responder), None).fetch(['us-central1'], PricingOptions()).products[0]
    assert product.price_per_tb_month == pytest.approx(81.92)
    assert product.from_upstream is True


def test_local_ssd_falls_back_on_failure():
    """An upstream failure uses the fallback rate."""
    def responder(selection):
        raise PricingAPIError('down')

    product = GCPLocalSSDAdapter(FakePricingClient(responder), None).fetch(['us-central1'], PricingOptions()).products[0]
    assert product.price_per_tb_month == FALLBACK_PRICE_PER_TB_MONTH
    assert product.from_upstream is False


# Managed database

def test_classify_cluster_sku():
    """Metal flag first, then the tshirt-size code."""
    assert classify_cluster_sku({'metal': True, 'tshirt_size': 'PS.m1.40'}) == InstanceClass.METAL
    assert classify_cluster_sku({'tshirt_size': 'PS.m1.40'}) == InstanceClass.MEMORY
    assert classify_cluster_sku({'tshirt_size': 'PS.c1.40'}) == InstanceClass.COMPUTE
    assert classify_cluster_sku({'tshirt_size': 'PS.x9.40'}) == InstanceClass.GENERAL


def test_bytes_to_gb():
    """Byte counts are divided by 1024^3."""
    assert bytes_to_gb(16 * 1024 ** 3) == 16
    assert bytes_to_gb(None) == 0


def test_cloud_location():
    """Display names carry the cloud provider and region."""
    assert cloud_location(PSDB_REGIONS, 'gcp-us-central1') == ('gcp', 'us-central1')
    assert cloud_location(PSDB_REGIONS, 'nowhere') is None


def test_psdb_products_skip_unpriced_skus():
    """SKUs without a rate are not products."""
    adapter = PSDBAdapter(FakeCatalogClient(cluster_skus=CLUSTER_SKUS))
    result = adapter.fetch([], PricingOptions(region='us-east'), enrich=False)
    names = [product.instance_type for product in result.products]
    assert 'PS_DEV' not in names
    product = result.products[0]
    assert product.memory == 16
    assert product.managed_rates.rate == 219.0
    assert product.managed_rates.default_gateway == 'VTG_5'


def test_psdb_enrichment_sets_provider_instance_type():
    """Each SKU gets the equivalent cloud instance type."""
    cloud = [
        Product('r5.large', 'r5', 'large', 2, 16, InstanceClass.GENERAL),
        Product('r5.xlarge', 'r5', 'xlarge', 4, 32, InstanceClass.MEMORY),
    ]
    seen = []

    def lookup(provider, region):
        seen.append((provider, region))
        return cloud

    adapter = PSDBAdapter(FakeCatalogClient(regions=PSDB_REGIONS, cluster_skus=CLUSTER_SKUS), lookup)
    result = adapter.fetch(['PS_40', 'M_80'], PricingOptions(region='us-east'))
    assert seen == [('aws', 'us-east-1')]
    assert [product.provider_instance_type for product in result.products] == ['r5.large', 'r5.xlarge']


def test_psdb_enrichment_failure_keeps_products():
    """A failed cloud lookup leaves products without a provider type."""
    def lookup(provider, region):
        raise PricingAPIError('down')

    adapter = PSDBAdapter(FakeCatalogClient(regions=PSDB_REGIONS, cluster_skus=CLUSTER_SKUS), lookup)
    result = adapter.fetch(['PS_40'], PricingOptions(region='us-east'))
    assert result.products[0].provider_instance_type is None


def test_psdb_catalog_failure_propagates():
    """A failed cluster catalog is an upstream error."""
    class BrokenCatalog(FakeCatalogClient):
        def fetch_cluster_skus(self, region=None):
            raise CatalogAPIError('Failed to retrieve cluster size skus.')

    with pytest.raises(CatalogAPIError):
        PSDBAdapter(BrokenCatalog()).fetch([], PricingOptions(region='us-east'))
