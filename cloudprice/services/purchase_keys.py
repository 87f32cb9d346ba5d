"""
Purchase-option key builder.

Reserved (AWS) keys encode term, offering class and payment option, e.g.
"yrTerm3Convertible.allUpfront". Committed-use (GCP) keys encode commitment
type and term, e.g. "cud-resource-3y".
"""
from typing import Dict, Optional


RESERVED_TERMS: Dict[str, str] = {"1yr": "yrTerm1", "3yr": "yrTerm3"}
RESERVED_CLASSES: Dict[str, str] = {"standard": "Standard.", "convertible": "Convertible."}
RESERVED_PAYMENTS: Dict[str, str] = {
    "all_upfront": "allUpfront",
    "partial_upfront": "partialUpfront",
    "no_upfront": "noUpfront",
}

# Payment option names as reported by the pricing API
PAYMENT_API_NAMES: Dict[str, str] = {
    "no_upfront": "No Upfront",
    "partial_upfront": "Partial Upfront",
    "all_upfront": "All Upfront",
}

COMMITTED_TERMS: Dict[str, str] = {"1yr": "1y", "3yr": "3y"}
CUD_TYPES = ("flexi", "resource")


def build_reserved_key(
    purchase_term: Optional[str] = None,
    offering_class: Optional[str] = None,
    payment_option: Optional[str] = None
) -> str:
    """
    Build the reserved pricing key.

    Unrecognised or unset values fall back to 1yr, standard and no upfront.

    Args:
        purchase_term: '1yr' or '3yr'
        offering_class: 'standard' or 'convertible'
        payment_option: 'all_upfront', 'partial_upfront' or 'no_upfront'

    Returns:
        Key such as 'yrTerm1Standard.noUpfront'
    """
    term = RESERVED_TERMS["3yr"] if purchase_term == "3yr" else RESERVED_TERMS["1yr"]
    offering = RESERVED_CLASSES["convertible"] if offering_class == "convertible" else RESERVED_CLASSES["standard"]
    payment = RESERVED_PAYMENTS.get(payment_option or "", RESERVED_PAYMENTS["no_upfront"])
    return f"{term}{offering}{payment}"


def build_committed_key(purchase_term: Optional[str] = None, cud_type: Optional[str] = None) -> str:
    """
    Build the committed-use pricing key.

    cud_type falls back to 'flexi' and purchase_term to '1yr'.
    """
    kind = "resource" if cud_type == "resource" else "flexi"
    term = COMMITTED_TERMS["3yr"] if purchase_term == "3yr" else COMMITTED_TERMS["1yr"]
    return f"cud-{kind}-{term}"


def payment_option_from_api(name: Optional[str]) -> Optional[str]:
    """Translate an API payment name ('All Upfront') to its option value ('all_upfront')."""
    if not name:
        return None
    for option, api_name in PAYMENT_API_NAMES.items():
        if api_name.lower() == name.strip().lower():
            return option
    return None
