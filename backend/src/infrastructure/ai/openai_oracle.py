"""
OpenAI Oracle - Concrete implementation of IntelligenceOraclePort for OpenAI.

Asks a chat model for a single 0-100 compatibility score in JSON mode.
Any response that is not exactly {"score": <int 0..100>} is a failure.
"""

import json
import os
import time
import logging
from typing import Optional

from openai import (
    AsyncOpenAI,
    APIError,
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    RateLimitError,
)

from domain.matching import (
    CancellationToken,
    IntelligenceOraclePort,
    OracleInvalidResponseError,
    OracleServiceError,
    OracleTimeoutError,
    check_cancelled,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You rate how compatible two dating profiles are for a long-term relationship.
Each profile starts with the aspect to rate (personality or values).
Return a JSON object with exactly one field:
- score: integer from 0 (incompatible) to 100 (highly compatible)

Return ONLY valid JSON, no markdown formatting."""


class OpenAIIntelligenceOracle(IntelligenceOraclePort):
    """
    OpenAI implementation of IntelligenceOraclePort.

    Uses the async OpenAI Python SDK (v1.x+) with JSON mode and
    temperature 0 so repeated calls for the same pair agree.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 5.0,
        client: Optional[AsyncOpenAI] = None
    ):
        """
        Initialize OpenAI oracle.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Chat model name
            timeout: SDK request timeout in seconds
            client: Preconfigured AsyncOpenAI client (tests)

        Raises:
            ValueError: If API key is not provided and no client is given
        """
        self.model = model
        self.timeout = timeout
        if client is not None:
            self.client = client
            return

        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OpenAI API key not provided. Set OPENAI_API_KEY environment variable.")
        # No SDK retries; the scorer falls back locally on failure
        self.client = AsyncOpenAI(api_key=api_key, max_retries=0)

    @property
    def name(self) -> str:
        return "openai"

    async def score(
        self,
        text_a: str,
        text_b: str,
        cancellation: Optional[CancellationToken] = None
    ) -> int:
        """
        Score two profile texts with the chat model.

        Raises:
            OracleTimeoutError: Request timed out
            OracleServiceError: Provider unavailable, rate limited or auth failed
            OracleInvalidResponseError: Response was not a clean 0-100 score
        """
        check_cancelled(cancellation, "oracle request")

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Profile A:\n{text_a}\n\nProfile B:\n{text_b}"}
        ]

        start_time = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
                temperature=0.0,
                timeout=self.timeout
            )

        except APITimeoutError as e:
            raise OracleTimeoutError(f"OpenAI API timeout: {str(e)}")

        except RateLimitError as e:
            raise OracleServiceError(f"OpenAI rate limit exceeded: {str(e)}")

        except AuthenticationError as e:
            raise OracleServiceError(f"OpenAI authentication failed: {str(e)}")

        except (APIConnectionError, APIError) as e:
            raise OracleServiceError(f"OpenAI service error: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(f"OpenAI oracle answered in {latency_ms}ms", extra={"oracle": self.name})

        if not response.choices:
            raise OracleInvalidResponseError("OpenAI response contained no choices")
        return self.parse_score(response.choices[0].message.content)

    @staticmethod
    def parse_score(raw_output: Optional[str]) -> int:
        """
        Parse a {"score": int} JSON payload.

        Example:
            >>> OpenAIIntelligenceOracle.parse_score('{"score": 87}')
            87

        Raises:
            OracleInvalidResponseError: Missing, non-integer or out-of-range score
        """
        if not raw_output:
            raise OracleInvalidResponseError("Empty oracle response")
        try:
            payload = json.loads(raw_output)
        except json.JSONDecodeError as e:
            raise OracleInvalidResponseError(f"Failed to parse oracle JSON output: {str(e)}")

        if not isinstance(payload, dict) or "score" not in payload:
            raise OracleInvalidResponseError("Oracle response has no 'score' field")

        score = payload["score"]
        if isinstance(score, bool) or not isinstance(score, int):
            raise OracleInvalidResponseError(f"Oracle score must be an integer, got {score!r}")
        if score < 0 or score > 100:
            raise OracleInvalidResponseError(f"Oracle score {score} outside 0..100")
        return score
