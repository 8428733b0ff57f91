"""Entity kind classification (company vs. investor)."""

from .models import (
    ClassificationResult,
    ClassificationRequest,
    EntityMetadata,
    metadata_from_entity_detail,
)
from .cache import SOURCE_STRENGTH, ClassificationCache
from .strategies import (
    ClassificationStrategy,
    HeuristicStrategy,
    VerificationStrategy,
    FallbackFlagStrategy,
    DefaultStrategy,
    default_strategies,
    has_investor_marker,
)
from .classifier import EntityKindClassifier, ClassificationSession

__all__ = [
    # Models
    "ClassificationResult",
    "ClassificationRequest",
    "EntityMetadata",
    "metadata_from_entity_detail",
    # Cache
    "SOURCE_STRENGTH",
    "ClassificationCache",
    # Strategies
    "ClassificationStrategy",
    "HeuristicStrategy",
    "VerificationStrategy",
    "FallbackFlagStrategy",
    "DefaultStrategy",
    "default_strategies",
    "has_investor_marker",
    # Classifier
    "EntityKindClassifier",
    "ClassificationSession",
]
