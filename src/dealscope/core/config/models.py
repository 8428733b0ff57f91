"""
Pydantic configuration models for DealScope.

These models provide type-safe configuration with validation for:
- Upstream endpoint settings
- Entity classification constants
- Sector fallback mapping
- Logging
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .vocabulary import FALLBACK_SECONDARY_TO_PRIMARY


# =============================================================================
# Enums
# =============================================================================


class EntityKind(str, Enum):
    """How a referenced entity is routed and displayed."""

    COMPANY = "company"
    INVESTOR = "investor"
    UNKNOWN = "unknown"


class ClassificationSource(str, Enum):
    """Where a classification decision came from."""

    HEURISTIC_RULE = "heuristic_rule"
    VERIFIED_BY_LOOKUP = "verified_by_lookup"
    FALLBACK_FLAG = "fallback_flag"


class SectorImportance(str, Enum):
    """Sector association strength."""

    PRIMARY = "Primary"
    SECONDARY = "Secondary"


# =============================================================================
# Upstream Configuration
# =============================================================================


class UpstreamConfig(BaseModel):
    """Upstream JSON backend endpoints and transport settings."""

    base_url: str = Field(
        default="https://xdil-abvj-o7rq.e2.xano.io",
        description="Backend base URL",
    )
    entity_detail_path: str = Field(
        default="/api:GYQcK4au/Get_new_company/{entity_id}",
        description="Entity detail lookup path template",
    )
    investor_profile_path: str = Field(
        default="/api:y4OAXSVm/get_the_investor_new_company",
        description="Investor-profile verification lookup path",
    )
    investor_profile_param: str = Field(
        default="new_comp_id",
        description="Query parameter carrying the entity id for verification",
    )
    timeout_seconds: float = Field(
        default=10.0,
        ge=0.5,
        le=120.0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Attempts per request (including the first)",
    )
    api_token: str | None = Field(
        default=None,
        description="Optional bearer token forwarded to the backend",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def entity_detail_url(self, entity_id: int) -> str:
        return self.base_url + self.entity_detail_path.format(entity_id=entity_id)

    def investor_profile_url(self) -> str:
        return self.base_url + self.investor_profile_path


# =============================================================================
# Classifier Configuration
# =============================================================================


def _default_investor_sectors() -> dict[str, int]:
    # Only confirmed archetype ids ship as defaults; add the rest via config
    return {"venture_capital": 23877}


class ClassifierConfig(BaseModel):
    """Constants and limits for entity kind classification.

    Read-only for the process lifetime once loaded.
    """

    model_config = {"frozen": True}

    financial_services_focus_id: int = Field(
        default=74,
        gt=0,
        description="Primary business focus id meaning 'Financial Services'",
    )
    investor_sector_ids: dict[str, int] = Field(
        default_factory=_default_investor_sectors,
        description="Investor-archetype sector ids by archetype name",
    )
    profile_marker_keys: tuple[str, ...] = Field(
        default=("Investor", "Focus", "Invested_DA_sectors"),
        min_length=1,
        description="Top-level keys whose non-empty presence confirms an investor profile",
    )
    verify_timeout_seconds: float = Field(
        default=4.0,
        gt=0.0,
        le=60.0,
        description="Upper bound for a single verification lookup",
    )
    max_concurrency: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum concurrent verification lookups in a batch",
    )

    @property
    def investor_sector_id_set(self) -> frozenset[int]:
        return frozenset(self.investor_sector_ids.values())


# =============================================================================
# Sector Configuration
# =============================================================================


class SectorConfig(BaseModel):
    """Sector resolution settings."""

    keyword_fallback: dict[str, str] = Field(
        default_factory=lambda: dict(FALLBACK_SECONDARY_TO_PRIMARY),
        description="Secondary sector name -> approximate primary sector (lossy)",
    )
    use_keyword_fallback: bool = Field(
        default=True,
        description="Apply the keyword table when no primary sector resolves",
    )

    @field_validator("keyword_fallback")
    @classmethod
    def normalize_keys(cls, v: dict[str, str]) -> dict[str, str]:
        return {k.strip().lower(): val for k, val in v.items() if k and k.strip()}


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from dealscope.yaml.
    """

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    sectors: SectorConfig = Field(default_factory=SectorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    default_currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="Currency code assumed when an amount carries none",
    )
