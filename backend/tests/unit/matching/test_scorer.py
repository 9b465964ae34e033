"""Unit tests for CompatibilityScorer.

Tests the four factors, the oracle fallback path and input validation.
"""

import pytest
from uuid import uuid4

from domain.matching import (
    CancellationToken,
    GenderIdentity,
    NotFoundError,
    OperationCancelledError,
    OracleInvalidResponseError,
    OracleServiceError,
    OracleTimeoutError,
    Profile,
    ValidationError,
)
from matching.scorer import (
    CompatibilityScorer,
    build_profile_text,
    calculate_fallback_score,
    calculate_interest_score,
    calculate_lifestyle_score,
    pair_fingerprint,
)
from fixtures.stores import InMemoryProfileStore, StubOracle, make_profile


class TestInterestScore:
    """Test tag overlap scoring."""

    def test_identical_tags_score_100(self):
        a = make_profile(tags=["hiking", "cooking", "travel"])
        b = make_profile(tags=["Travel", "hiking", "COOKING"])
        assert calculate_interest_score(a, b) == 100

    def test_disjoint_tags_score_0(self):
        a = make_profile(tags=["hiking", "cooking"])
        b = make_profile(tags=["chess", "opera"])
        assert calculate_interest_score(a, b) == 0

    def test_partial_overlap_truncates(self):
        a = make_profile(tags=["hiking", "cooking"])
        b = make_profile(tags=["hiking", "chess", "opera"])
        # 1 / 4
        assert calculate_interest_score(a, b) == 25

    def test_empty_tags_are_neutral(self):
        a = make_profile(tags=[])
        b = make_profile(tags=["hiking"])
        assert calculate_interest_score(a, b) == 50


class TestFallbackScore:
    """Test the local personality/value heuristic."""

    def test_full_overlap(self):
        a = make_profile(tags=["hiking"])
        b = make_profile(tags=["hiking"])
        assert calculate_fallback_score(a, b) == 100

    def test_no_overlap(self):
        a = make_profile(tags=["hiking"])
        b = make_profile(tags=["chess"])
        assert calculate_fallback_score(a, b) == 40

    def test_half_overlap(self):
        a = make_profile(tags=["hiking", "cooking"])
        b = make_profile(tags=["hiking", "chess"])
        # 40 + round(1/3 * 60)
        assert calculate_fallback_score(a, b) == 60

    def test_missing_tags(self):
        a = make_profile(tags=[])
        b = make_profile(tags=[])
        assert calculate_fallback_score(a, b) == 60


class TestLifestyleScore:
    """Test location, age-range and gender reciprocity points."""

    def test_fully_compatible(self):
        assert calculate_lifestyle_score(make_profile(), make_profile()) == 100

    def test_location_case_insensitive(self):
        a = make_profile(location="Berlin")
        b = make_profile(location=" berlin ")
        assert calculate_lifestyle_score(a, b) == 100

    def test_location_mismatch(self):
        a = make_profile(location="Berlin")
        b = make_profile(location="Vienna")
        assert calculate_lifestyle_score(a, b) == 12 + 30 + 30

    def test_location_unknown(self):
        a = make_profile(location=None)
        assert calculate_lifestyle_score(a, make_profile()) == 20 + 30 + 30

    def test_one_way_age_acceptance(self):
        a = make_profile(age=30, min_age=18, max_age=99)
        b = make_profile(age=50, min_age=40, max_age=60)
        assert calculate_lifestyle_score(a, b) == 40 + 15 + 30

    def test_no_age_acceptance(self):
        a = make_profile(age=30, min_age=40, max_age=60)
        b = make_profile(age=70, min_age=18, max_age=25)
        assert calculate_lifestyle_score(a, b) == 40 + 0 + 30

    def test_gender_must_be_reciprocal(self):
        a = make_profile(gender=GenderIdentity.MALE, accepted_genders=[GenderIdentity.FEMALE])
        b = make_profile(gender=GenderIdentity.FEMALE, accepted_genders=[GenderIdentity.FEMALE])
        assert calculate_lifestyle_score(a, b) == 40 + 30


class TestOracleText:

    def test_profile_text_carries_aspect(self):
        profile = Profile(id=uuid4(), bio="Loves dogs")
        assert build_profile_text(profile, "values") == "Aspect: values. Bio: Loves dogs"

    def test_fingerprint_is_stable_and_order_sensitive(self):
        assert pair_fingerprint("a", "b") == pair_fingerprint("a", "b")
        assert pair_fingerprint("a", "b") != pair_fingerprint("b", "a")
        assert len(pair_fingerprint("a", "b")) == 16


class TestCompatibilityScorer:
    """Test the full scoring flow against stub oracles."""

    @pytest.mark.asyncio
    async def test_shared_interests_and_high_oracle_score(self):
        """Profiles sharing every interest with oracle 95 score at least 90."""
        a = make_profile(tags=["hiking", "cooking", "travel"])
        b = make_profile(tags=["hiking", "cooking", "travel"])
        scorer = CompatibilityScorer(StubOracle(95))

        result = await scorer.score(a, b)

        assert result.interest == 100
        assert result.personality == 95
        assert result.value == 95
        assert result.overall_score >= 90
        assert result.used_fallback is False

    @pytest.mark.asyncio
    async def test_oracle_called_once_per_aspect(self):
        oracle = StubOracle({"personality": 70, "values": 40})
        scorer = CompatibilityScorer(oracle)

        result = await scorer.score(make_profile(), make_profile())

        assert len(oracle.calls) == 2
        assert oracle.calls[0][0].startswith("Aspect: personality")
        assert oracle.calls[1][0].startswith("Aspect: values")
        assert result.personality == 70
        assert result.value == 40

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        RuntimeError("boom"),
        OracleServiceError("rate limited"),
        OracleTimeoutError("slow"),
        OracleInvalidResponseError("garbage"),
    ])
    async def test_oracle_failure_uses_fallback(self, error):
        a = make_profile(tags=["hiking", "cooking"])
        b = make_profile(tags=["hiking", "chess"])
        scorer = CompatibilityScorer(StubOracle(error=error))

        result = await scorer.score(a, b)

        assert result.used_fallback is True
        assert result.personality == 60
        assert result.value == 60
        assert 0 <= result.overall_score <= 100

    @pytest.mark.asyncio
    async def test_out_of_range_oracle_score_uses_fallback(self):
        scorer = CompatibilityScorer(StubOracle(150))
        result = await scorer.score(make_profile(), make_profile())
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_non_integer_oracle_score_uses_fallback(self):
        scorer = CompatibilityScorer(StubOracle(72.5))
        result = await scorer.score(make_profile(), make_profile())
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_partial_oracle_failure_falls_back_for_both(self):
        """A good personality answer is discarded if the values call fails."""
        oracle = StubOracle({"personality": 90})  # KeyError on values
        a = make_profile(tags=["hiking"])
        b = make_profile(tags=["chess"])

        result = await CompatibilityScorer(oracle).score(a, b)

        assert result.used_fallback is True
        assert result.personality == 40
        assert result.value == 40

    @pytest.mark.asyncio
    async def test_slow_oracle_times_out(self):
        scorer = CompatibilityScorer(StubOracle(90, delay=1.0), timeout_seconds=0.05)
        result = await scorer.score(make_profile(), make_profile())
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_same_profile_rejected(self):
        profile = make_profile()
        with pytest.raises(ValidationError):
            await CompatibilityScorer(StubOracle()).score(profile, profile)

    @pytest.mark.asyncio
    async def test_missing_profile_rejected(self):
        with pytest.raises(ValidationError):
            await CompatibilityScorer(StubOracle()).score(make_profile(), None)

    @pytest.mark.asyncio
    async def test_cancelled_before_oracle_call(self):
        oracle = StubOracle()
        token = CancellationToken()
        token.cancel("client went away")

        with pytest.raises(OperationCancelledError):
            await CompatibilityScorer(oracle).score(make_profile(), make_profile(), token)
        assert oracle.calls == []

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            CompatibilityScorer(StubOracle(), timeout_seconds=0)


class TestScoreById:
    """Test scoring through the profile store."""

    @pytest.mark.asyncio
    async def test_scores_stored_profiles(self):
        a, b = make_profile(), make_profile()
        store = InMemoryProfileStore([a, b])
        result = await CompatibilityScorer(StubOracle(80)).score_by_id(a.id, b.id, store)
        assert result.personality == 80

    @pytest.mark.asyncio
    async def test_unknown_profile_raises_not_found(self):
        a = make_profile()
        store = InMemoryProfileStore([a])
        with pytest.raises(NotFoundError):
            await CompatibilityScorer(StubOracle()).score_by_id(a.id, uuid4(), store)

    @pytest.mark.asyncio
    async def test_same_id_rejected_before_lookup(self):
        user_id = uuid4()
        with pytest.raises(ValidationError):
            await CompatibilityScorer(StubOracle()).score_by_id(user_id, user_id, InMemoryProfileStore())
