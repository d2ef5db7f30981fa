"""Hybrid search: embeddings, date parsing, weighted ranking and answers."""

from secondbrain.search.embeddings import EmbeddingError, EmbeddingService
from secondbrain.search.errors import SearchValidationError, UpstreamUnavailableError
from secondbrain.search.predicates import ContentFilter
from secondbrain.search.ranker import HybridRanker, SearchOutcome
from secondbrain.search.scoring import ScoreBreakdown
from secondbrain.search.store import ContentStore, InMemoryContentStore, RankedItem
from secondbrain.search.synthesizer import AnswerSynthesizer
from secondbrain.search.temporal import TemporalParser

__all__ = [
    "AnswerSynthesizer",
    "ContentFilter",
    "ContentStore",
    "EmbeddingError",
    "EmbeddingService",
    "HybridRanker",
    "InMemoryContentStore",
    "RankedItem",
    "ScoreBreakdown",
    "SearchOutcome",
    "SearchValidationError",
    "TemporalParser",
    "UpstreamUnavailableError",
]
