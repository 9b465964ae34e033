"""
Word Overlap Oracle - Offline implementation of IntelligenceOraclePort.

Deterministic stand-in for the remote oracle, used in development and when
no OpenAI key is configured. Scores the share of words two profile texts
have in common:

    score = clamp(int(common / total * 100) + 30, 10, 100)
"""

import re
from typing import Optional

from domain.matching import CancellationToken, IntelligenceOraclePort, check_cancelled

WORD_PATTERN = re.compile(r"[a-z0-9']+")

BASE_OFFSET = 30
MIN_SCORE = 10


class WordOverlapOracle(IntelligenceOraclePort):
    """Word-overlap implementation of IntelligenceOraclePort."""

    @property
    def name(self) -> str:
        return "word_overlap"

    async def score(
        self,
        text_a: str,
        text_b: str,
        cancellation: Optional[CancellationToken] = None
    ) -> int:
        check_cancelled(cancellation, "oracle request")

        words_a = set(WORD_PATTERN.findall((text_a or "").lower()))
        words_b = set(WORD_PATTERN.findall((text_b or "").lower()))
        total = len(words_a | words_b)
        if total == 0:
            return MIN_SCORE

        common = len(words_a & words_b)
        return max(MIN_SCORE, min(100, int(common / total * 100) + BASE_OFFSET))
