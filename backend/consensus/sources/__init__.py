from consensus.sources.api_football import ApiFootballSource
from consensus.sources.base import SourceAdapter, SourceFetchError, extract_confidence
from consensus.sources.betbrain import BetbrainSource
from consensus.sources.escored import EscoredSource
from consensus.sources.forebet import ForebetSource
from consensus.sources.registry import SOURCE_TYPES, build_sources

__all__ = [
    "SourceAdapter",
    "SourceFetchError",
    "extract_confidence",
    "ApiFootballSource",
    "BetbrainSource",
    "EscoredSource",
    "ForebetSource",
    "SOURCE_TYPES",
    "build_sources",
]
