"""
Search engine facade: one configured strategy plus an optional fallback.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from pyqbank import config
from pyqbank.exceptions.service_exceptions import SearchBackendUnavailableError
from pyqbank.services.search_strategies import (
    ExternalAutocompleteSearch,
    IndexedTextSearch,
    SearchPage,
    SearchQuery,
    SearchStrategy,
    SubstringSearch,
)

logger = logging.getLogger(__name__)


class SearchEngine:
    """Strategy-agnostic search. Degrades to the fallback when the primary backend is down."""

    def __init__(self, primary: SearchStrategy, fallback: Optional[SearchStrategy] = None):
        self.primary = primary
        self.fallback = fallback

    async def search(self, query: SearchQuery, db: AsyncSession) -> SearchPage:
        try:
            return await self.primary.search(query, db)
        except SearchBackendUnavailableError as e:
            if self.fallback is None:
                raise
            logger.warning(
                f"Search strategy '{self.primary.name}' unavailable ({e.reason}); "
                f"falling back to '{self.fallback.name}'"
            )
            return await self.fallback.search(query, db)


def build_strategy(name: str) -> SearchStrategy:
    if name == IndexedTextSearch.name:
        return IndexedTextSearch()
    if name == SubstringSearch.name:
        return SubstringSearch()
    if name == ExternalAutocompleteSearch.name:
        return ExternalAutocompleteSearch(
            base_url=config.EXTERNAL_SEARCH_URL,
            index_name=config.EXTERNAL_SEARCH_INDEX,
            timeout=config.EXTERNAL_SEARCH_TIMEOUT,
        )
    raise ValueError(f"Unknown search strategy '{name}'. Use indexed, substring or external")


def build_search_engine(
    strategy_name: Optional[str] = None,
    fallback_enabled: Optional[bool] = None,
) -> SearchEngine:
    strategy_name = (strategy_name or config.SEARCH_STRATEGY).strip().lower()
    if fallback_enabled is None:
        fallback_enabled = config.SEARCH_FALLBACK_ENABLED

    primary = build_strategy(strategy_name)
    fallback = None
    if fallback_enabled and not isinstance(primary, SubstringSearch):
        fallback = SubstringSearch()

    logger.info(f"Search engine using '{primary.name}' strategy (fallback: {fallback.name if fallback else 'none'})")
    return SearchEngine(primary, fallback)


_search_engine: Optional[SearchEngine] = None


def get_search_engine() -> SearchEngine:
    """FastAPI dependency returning the process-wide engine."""
    global _search_engine
    if _search_engine is None:
        _search_engine = build_search_engine()
    return _search_engine
