"""Registry of statement extractors by name.

The set of formats is fixed; adding a bank means adding a class here.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .base import StatementExtractor
from .caixa_cc_fatura import CaixaCCFaturaExtractor
from .caixa_extrato import CaixaExtratoExtractor
from .nubank_cc_fatura import NubankCCFaturaExtractor
from .nubank_extrato import NubankExtratoExtractor

EXTRACTOR_REGISTRY: Dict[str, StatementExtractor] = {
    extractor.key: extractor
    for extractor in (
        CaixaExtratoExtractor(),
        CaixaCCFaturaExtractor(),
        NubankExtratoExtractor(),
        NubankCCFaturaExtractor(),
    )
}


def get_extractor(name: str) -> Optional[StatementExtractor]:
    """Return the extractor registered under ``name``, or None."""
    return EXTRACTOR_REGISTRY.get(name)


def list_extractors() -> List[Dict[str, str]]:
    """Name/display-name pairs for populating an extractor picker."""
    return [
        {"name": key, "displayName": extractor.name}
        for key, extractor in EXTRACTOR_REGISTRY.items()
    ]
