"""
Field-name synonym and keyword tables for upstream payloads.

The backend has renamed the same fields across schema generations. These
tables list, per canonical field, every key name seen in the wild, in the
order they should be tried.
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Canonical Field -> Possible Payload Keys
# =============================================================================

FIELD_SYNONYMS: dict[str, list[str]] = {
    "entity_id": [
        "id",
        "new_company_counterparty",
        "counterparty_id",
        "company_id",
        "new_company_id",
        "advisor_company_id",
    ],
    "entity_name": [
        "name",
        "company_name",
        "counterparty_name",
        "advisor_company_name",
    ],
    # Nested objects that wrap the actual company in legacy payloads
    "nested_company": [
        "_new_company",
        "new_company",
        "advisor_company",
        "advised_company",
        "company",
    ],
    "route": [
        "route",
        "entity_type",
        "page_type",
    ],
    "path": [
        "path",
        "href",
        "url_path",
    ],
    "is_investor": [
        "_is_that_investor",
        "is_investor",
    ],
    "counterparty_status": [
        "counterparty_status",
        "company_advised_role",
    ],
    "sector_name": [
        "sector_name",
        "name",
        "Sector_name",
    ],
    "sector_id": [
        "id",
        "sector_id",
        "Sector_id",
    ],
    "sector_importance": [
        "Sector_importance",
        "sector_importance",
        "importance",
    ],
    "related_primary": [
        "related_to_primary_sectors",
        "Related_to_primary_sectors",
        "related_primary_sectors",
    ],
    "focus": [
        "primary_business_focus_id",
        "primary_business_focus",
        "business_focus_id",
    ],
    "sectors": [
        "sectors_id",
        "sector_ids",
        "sectors",
    ],
    "currency": [
        "Currency",
        "currency",
        "currency_code",
        "code",
        "currrency",
    ],
    "announcement_date": [
        "announcement_date",
        "Announcement_date",
        "announced_at",
    ],
    "deal_type": [
        "deal_type",
        "Deal_type",
    ],
}


# Route/entity_type tokens that unambiguously mean "investor"
INVESTOR_ROUTE_TOKENS: frozenset[str] = frozenset({"investor", "investors"})
COMPANY_ROUTE_TOKENS: frozenset[str] = frozenset({"company", "companies"})

# Strings the backend uses where a value is missing
NOT_AVAILABLE_TOKENS: frozenset[str] = frozenset({
    "",
    "n/a",
    "na",
    "nan",
    "none",
    "null",
    "undefined",
    "not available",
    "-",
    "1900-01-01",
})

CURRENCY_SYMBOLS: dict[str, str] = {
    "US$": "USD",
    "CA$": "CAD",
    "AU$": "AUD",
    "C$": "CAD",
    "A$": "AUD",
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
}


# =============================================================================
# Secondary Sector -> Approximate Primary Sector
# =============================================================================

# Lossy, hand-maintained approximation used only when a payload yields no
# primary sector at all. Keys are lower-cased sector names.
FALLBACK_SECONDARY_TO_PRIMARY: dict[str, str] = {
    "crypto": "Web 3",
    "blockchain": "Web 3",
    "defi": "Web 3",
    "nft": "Web 3",
    "web3": "Web 3",
    "business intelligence": "Data Analytics",
    "data science": "Data Analytics",
    "machine learning": "Data Analytics",
    "ai": "Data Analytics",
    "analytics": "Data Analytics",
    "big data": "Data Analytics",
    "cloud computing": "Infrastructure",
    "saas": "Software",
    "cybersecurity": "Security",
    "fintech": "Financial Services",
    "insurtech": "Financial Services",
    "proptech": "Real Estate",
    "healthtech": "Healthcare",
    "edtech": "Education",
    "legaltech": "Legal",
    "hrtech": "Human Resources",
    "martech": "Marketing",
    "adtech": "Advertising",
    "gaming": "Entertainment",
    "e-commerce": "Retail",
    "logistics": "Supply Chain",
    "iot": "Internet of Things",
    "robotics": "Automation",
}


def get_synonyms_for_field(field_name: str) -> list[str]:
    """Get all payload keys for a canonical field name.

    Args:
        field_name: Canonical field name (e.g., 'entity_name')

    Returns:
        List of possible payload keys for this field
    """
    return FIELD_SYNONYMS.get(field_name, [])


def get_field(data: Any, field_name: str) -> Any | None:
    """Get the first non-empty value stored under any synonym of a field.

    Args:
        data: Payload object (anything that is not a dict yields None)
        field_name: Canonical field name

    Returns:
        First value that is neither None nor an empty string
    """
    if not isinstance(data, dict):
        return None
    for key in get_synonyms_for_field(field_name):
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def normalize_sector_name(name: Any) -> str:
    """Lower-case, trimmed sector name used as a lookup key."""
    if name is None:
        return ""
    return str(name).strip().lower()
