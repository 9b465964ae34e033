"""AI Infrastructure - Adapters for the intelligence oracle port.

This module contains concrete implementations of IntelligenceOraclePort.
"""

from typing import Optional

from domain.matching import IntelligenceOraclePort

from .openai_oracle import OpenAIIntelligenceOracle
from .word_overlap_oracle import WordOverlapOracle


def build_oracle(
    api_key: Optional[str],
    model: str = "gpt-4o-mini",
    timeout: float = 5.0
) -> IntelligenceOraclePort:
    """Pick the OpenAI oracle when a key is configured, else the offline one."""
    if api_key:
        return OpenAIIntelligenceOracle(api_key=api_key, model=model, timeout=timeout)
    return WordOverlapOracle()


__all__ = [
    "OpenAIIntelligenceOracle",
    "WordOverlapOracle",
    "build_oracle",
]
