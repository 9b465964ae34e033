"""FastAPI dependency wiring for the matching engine.

Stores are bound to the request's database session; the oracle is built once
per process from settings.
"""

import asyncio
import logging
from functools import lru_cache
from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from database import get_db
from domain.matching import (
    CancellationToken,
    IntelligenceOraclePort,
    MatchHistoryStorePort,
    PreferenceStorePort,
    ProfileStorePort,
)
from infrastructure.ai import build_oracle
from infrastructure.repositories import (
    SqlAlchemyMatchHistoryStore,
    SqlAlchemyPreferenceStore,
    SqlAlchemyProfileStore,
)
from .preference_learner import PreferenceLearner
from .ranker import MatchRanker
from .scorer import CompatibilityScorer

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.5


@lru_cache()
def get_oracle() -> IntelligenceOraclePort:
    """Build the oracle once.

    Call get_oracle.cache_clear() after changing OPENAI_API_KEY.
    """
    settings = get_settings()
    oracle = build_oracle(
        api_key=settings.OPENAI_API_KEY,
        model=settings.ORACLE_MODEL,
        timeout=settings.ORACLE_TIMEOUT_SECONDS,
    )
    logger.info(f"Intelligence oracle: {oracle.name}", extra={"oracle": oracle.name})
    return oracle


def get_profile_store(db: AsyncSession = Depends(get_db)) -> ProfileStorePort:
    return SqlAlchemyProfileStore(db)


def get_match_history_store(db: AsyncSession = Depends(get_db)) -> MatchHistoryStorePort:
    return SqlAlchemyMatchHistoryStore(db)


def get_preference_store(db: AsyncSession = Depends(get_db)) -> PreferenceStorePort:
    return SqlAlchemyPreferenceStore(db)


def get_scorer(
    oracle: IntelligenceOraclePort = Depends(get_oracle),
    settings: Settings = Depends(get_settings)
) -> CompatibilityScorer:
    return CompatibilityScorer(oracle, timeout_seconds=settings.ORACLE_TIMEOUT_SECONDS)


def get_ranker(
    profile_store: ProfileStorePort = Depends(get_profile_store),
    preference_store: PreferenceStorePort = Depends(get_preference_store),
    scorer: CompatibilityScorer = Depends(get_scorer),
    settings: Settings = Depends(get_settings)
) -> MatchRanker:
    return MatchRanker(
        profile_store=profile_store,
        preference_store=preference_store,
        scorer=scorer,
        default_max_results=settings.RANK_DEFAULT_MAX_RESULTS,
        oversample_factor=settings.RANK_OVERSAMPLE_FACTOR,
        max_concurrency=settings.RANK_MAX_CONCURRENCY,
    )


def get_learner(
    preference_store: PreferenceStorePort = Depends(get_preference_store),
    match_history_store: MatchHistoryStorePort = Depends(get_match_history_store),
    profile_store: ProfileStorePort = Depends(get_profile_store)
) -> PreferenceLearner:
    return PreferenceLearner(
        preference_store=preference_store,
        match_history_store=match_history_store,
        profile_store=profile_store,
    )


async def get_cancellation_token(request: Request) -> AsyncGenerator[CancellationToken, None]:
    """Token that is cancelled when the HTTP client disconnects."""
    token = CancellationToken()

    async def watch_disconnect():
        while not token.is_cancelled:
            if await request.is_disconnected():
                logger.info("Client disconnected", extra={"path": request.url.path})
                token.cancel("client disconnected")
                return
            await asyncio.sleep(DISCONNECT_POLL_SECONDS)

    watcher = asyncio.create_task(watch_disconnect())
    try:
        yield token
    finally:
        watcher.cancel()
