"""
Candidate generator.
Expands configured family x size filters into instance types to query.
"""
from typing import List, Sequence, Tuple

from cloudprice.core.config import Settings
from cloudprice.core.errors import ConfigurationError
from cloudprice.domain.offerings import Offering


# Offering -> (family/size delimiter, settings attribute names)
_CANDIDATE_SOURCES = {
    Offering.AWS_EC2: (".", "aws_ec2_family_filter", "aws_ec2_size_filter"),
    Offering.GCP_COMPUTE: ("-", "gcp_compute_family_filter", "gcp_compute_size_filter"),
}


def expand_candidates(families: Sequence[str], sizes: Sequence[str], delimiter: str) -> List[str]:
    """
    Cartesian product of families and sizes, family-major.

    Example:
        (['m5', 'r5'], ['large'], '.') -> ['m5.large', 'r5.large']
    """
    return [f"{family}{delimiter}{size}" for family in families for size in sizes]


def filters_for(settings: Settings, offering: Offering) -> Tuple[str, Tuple[str, ...], Tuple[str, ...]]:
    """Return (delimiter, families, sizes) configured for an offering."""
    if offering not in _CANDIDATE_SOURCES:
        raise ValueError(f"{offering.provider}/{offering.product} does not use candidate expansion")
    delimiter, family_attr, size_attr = _CANDIDATE_SOURCES[offering]
    return delimiter, getattr(settings, family_attr), getattr(settings, size_attr)


def generate_candidates(settings: Settings, offering: Offering) -> List[str]:
    """
    Instance types to query when the caller gave no explicit list.

    Raises:
        ConfigurationError: If the family or size filter is empty
    """
    delimiter, families, sizes = filters_for(settings, offering)
    if not families or not sizes:
        raise ConfigurationError(
            f"Instance family and size filters must be configured for "
            f"{offering.provider}/{offering.product} (families: {list(families)}, sizes: {list(sizes)})"
        )
    return expand_candidates(families, sizes, delimiter)
