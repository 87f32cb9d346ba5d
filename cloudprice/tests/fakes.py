"""
Fake upstreams and record builders shared by the pricing tests.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


_SELECTION = re.compile(r'(?:(\w+): )?products\(filter: \{(.*?)\}\) \{', re.DOTALL)
_ATTRIBUTE = re.compile(r'\{ key: "([^"]*)", value: "([^"]*)" \}')
_FIELD = re.compile(r'(\w+): "([^"]*)"')
_PRICE_FILTER = re.compile(r'prices\(filter: \{(.*?)\}\)')


@dataclass
class Selection:
    """One products(...) selection parsed out of a query."""
    alias: Optional[str]
    filters: Dict[str, str]
    attributes: Dict[str, str]
    price_filter: Dict[str, str] = field(default_factory=dict)

    @property
    def region(self) -> Optional[str]:
        return self.filters.get('region')

    @property
    def product_family(self) -> Optional[str]:
        return self.filters.get('productFamily')


def parse_selections(query: str) -> List[Selection]:
    """Split a query document into its selections."""
    matches = list(_SELECTION.finditer(query))
    selections = []
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(query)
        body = query[match.end():end]
        filter_text = match.group(2)
        price_match = _PRICE_FILTER.search(body)
        selections.append(Selection(
            alias=match.group(1),
            filters={
                key: value for key, value in _FIELD.findall(filter_text)
                if key not in ('key', 'value')
            },
            attributes=dict(_ATTRIBUTE.findall(filter_text)),
            price_filter=dict(_FIELD.findall(price_match.group(1))) if price_match else {},
        ))
    return selections


class FakePricingClient:
    """Stands in for PricingGraphQLClient; a responder returns records per selection."""

    def __init__(self, responder: Callable[[Selection], List[Dict[str, Any]]]):
        self.responder = responder
        self.queries: List[str] = []
        self.closed = False

    def execute(self, query: str, ttl_seconds: Optional[int] = None) -> Dict[str, Any]:
        self.queries.append(query)
        return {
            (selection.alias or 'products'): self.responder(selection)
            for selection in parse_selections(query)
        }

    def close(self) -> None:
        self.closed = True


class FakeCatalogClient:
    """Stands in for CatalogClient with fixed payloads."""

    def __init__(self, regions=None, cluster_skus=None, gateway_skus=None):
        self.regions = regions if regions is not None else []
        self.cluster_skus = cluster_skus if cluster_skus is not None else []
        self.gateway_skus = gateway_skus if gateway_skus is not None else []
        self.closed = False

    def fetch_regions(self):
        return list(self.regions)

    def fetch_cluster_skus(self, region=None):
        return list(self.cluster_skus)

    def fetch_gateway_skus(self, names=()):
        return [sku for sku in self.gateway_skus if not names or sku.get('name') in names]

    def close(self):
        self.closed = True


def price_entry(usd, purchase_option='on_demand', term_length=None, offering_class=None, payment=None):
    """Upstream price entry."""
    return {
        'USD': str(usd),
        'purchaseOption': purchase_option,
        'termLength': term_length,
        'termOfferingClass': offering_class,
        'termPurchaseOption': payment,
    }


def make_record(attributes: Dict[str, str], prices: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Upstream product record."""
    return {
        'attributes': [{'key': key, 'value': value} for key, value in attributes.items()],
        'prices': prices,
    }


def ec2_record(instance_type, vcpu, memory_gb, price, storage='EBS only'):
    """On-demand EC2 record."""
    return make_record(
        {
            'instanceType': instance_type,
            'vcpu': str(vcpu),
            'memory': f'{memory_gb} GiB',
            'storage': storage,
        },
        [price_entry(price)],
    )


def gcp_record(machine_type, price):
    """On-demand GCP machine type record (shape comes from the name)."""
    return make_record({'machineType': machine_type}, [price_entry(price)])


# instance type -> (vCPU, memory GB, on-demand price)
EC2_CATALOG = {
    'm5.large': (2, 8, 0.096),
    'm5.xlarge': (4, 16, 0.192),
    'r5.large': (2, 16, 0.126),
    'r5.xlarge': (4, 32, 0.252),
}


def ec2_responder(selection: Selection):
    """Answer EC2 selections from EC2_CATALOG."""
    instance_type = selection.attributes.get('instanceType')
    if instance_type not in EC2_CATALOG:
        return []
    vcpu, memory, price = EC2_CATALOG[instance_type]
    return [ec2_record(instance_type, vcpu, memory, price)]


CLUSTER_SKUS = [
    {
        'name': 'PS_40',
        'tshirt_size': 'PS.g1.40',
        'cpu': '2',
        'ram': 16 * 1024 ** 3,
        'storage': 0,
        'rate': '219',
        'replica_rate': '73',
        'default_vtgate': 'VTG_5',
        'default_vtgate_rate': '10',
        'metal': False,
    },
    {
        'name': 'M_80',
        'tshirt_size': 'PS.m1.80',
        'cpu': '4',
        'ram': 32 * 1024 ** 3,
        'storage': 0,
        'rate': '400',
        'replica_rate': '130',
        'default_vtgate': 'VTG_5',
        'default_vtgate_rate': '10',
        'metal': False,
    },
    {
        'name': 'M_METAL_160',
        'tshirt_size': 'PS.m1.160',
        'cpu': '8',
        'ram': 64 * 1024 ** 3,
        'storage': 1900 * 1024 ** 3,
        'rate': '1200',
        'replica_rate': '400',
        'default_vtgate': 'VTG_20',
        'default_vtgate_rate': '40',
        'metal': True,
    },
    {
        'name': 'PS_DEV',
        'tshirt_size': 'PS.g1.DEV',
        'cpu': '1',
        'ram': 8 * 1024 ** 3,
        'rate': None,
    },
]

PSDB_REGIONS = [
    {'slug': 'us-east', 'display_name': 'AWS us-east-1', 'provider': 'AWS'},
    {'slug': 'gcp-us-central1', 'display_name': 'GCP us-central1', 'provider': 'GCP'},
    {'slug': 'eu-west', 'display_name': 'AWS eu-west-1', 'provider': 'AWS'},
]

GATEWAY_SKUS = [
    {'name': 'VTG_5', 'cpu': '1', 'rate': '10'},
    {'name': 'VTG_20', 'cpu': '4', 'rate': '40'},
]
