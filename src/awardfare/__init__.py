from awardfare.aggregator import AwardAggregator, status_code_for
from awardfare.config import AggregatorConfig, ProviderCredentials
from awardfare.core.errors import ValidationError
from awardfare.core.models import AggregationResult, CabinClass, CanonicalOffer, SearchCriteria

__version__ = "0.1.0"

__all__ = [
    "AggregationResult",
    "AggregatorConfig",
    "AwardAggregator",
    "CabinClass",
    "CanonicalOffer",
    "ProviderCredentials",
    "SearchCriteria",
    "ValidationError",
    "status_code_for",
]
