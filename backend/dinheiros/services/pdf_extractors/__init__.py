"""Bank statement PDF extractors (Caixa and Nubank)."""

from .base import ParsedTransaction, StatementExtractor
from .registry import EXTRACTOR_REGISTRY, get_extractor, list_extractors

__all__ = [
    "ParsedTransaction",
    "StatementExtractor",
    "EXTRACTOR_REGISTRY",
    "get_extractor",
    "list_extractors",
]
