"""pycovidstats - Async aggregation of pandemic statistics into a state tree."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pycovidstats")
except PackageNotFoundError:
    __version__ = "0+local"
from pycovidstats.aggregation import AggregationResult, ContinentAggregate, ContinentAggregator, aggregate
from pycovidstats.classifier import Classification, RegionBucket, classify, is_selected
from pycovidstats.config import CovidStatsConfig, FeedUrls
from pycovidstats.exceptions import (
    CovidStatsConfigError,
    CovidStatsError,
    CovidStatsPayloadError,
    CovidStatsStoreError,
    CovidStatsTransportError,
    TransformError,
)
from pycovidstats.models import CanonicalCountry, CountryInfo, RawCountryRecord
from pycovidstats.resolver import CountryResolver, TranslationTable, path_safe
from pycovidstats.runner import CovidStatsRunner, RunContext
from pycovidstats.state import JsonFileObjectStore, MemoryObjectStore, ObjectStore, Reconciler
from pycovidstats.transform import transform

__all__ = [
    "__version__",
    "AggregationResult",
    "CanonicalCountry",
    "Classification",
    "ContinentAggregate",
    "ContinentAggregator",
    "CountryInfo",
    "CountryResolver",
    "CovidStatsConfig",
    "CovidStatsConfigError",
    "CovidStatsError",
    "CovidStatsPayloadError",
    "CovidStatsRunner",
    "CovidStatsStoreError",
    "CovidStatsTransportError",
    "FeedUrls",
    "JsonFileObjectStore",
    "MemoryObjectStore",
    "ObjectStore",
    "RawCountryRecord",
    "Reconciler",
    "RegionBucket",
    "RunContext",
    "TransformError",
    "TranslationTable",
    "aggregate",
    "classify",
    "is_selected",
    "path_safe",
    "transform",
]
