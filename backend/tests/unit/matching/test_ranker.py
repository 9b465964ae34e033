"""Unit tests for MatchRanker and the preference boost."""

import asyncio

import pytest
from uuid import uuid4

from domain.matching import (
    CancellationToken,
    NotFoundError,
    OperationCancelledError,
    UserPreferences,
    ValidationError,
)
from matching.ranker import MatchRanker, apply_boost, calculate_preference_boost
from matching.scorer import CompatibilityScorer
from fixtures.stores import PerCandidateOracle, StubOracle, make_profile


def make_ranker(profile_store, preference_store, oracle, **kwargs):
    return MatchRanker(profile_store, preference_store, CompatibilityScorer(oracle), **kwargs)


def preferences_with(user_id, weights=None, accepted_scores=()):
    prefs = UserPreferences(user_id=user_id)
    for tag, weight in (weights or {}).items():
        prefs.update_interest_weight(tag, weight)
    for score in accepted_scores:
        prefs.record_match_acceptance(score)
    return prefs


class TestPreferenceBoost:
    """Test the bounded boost calculation."""

    def test_single_weighted_tag(self):
        """weights {hiking: 0.9}, candidate shares only hiking, base 75 -> 84."""
        candidate = make_profile(tags=["hiking"])
        prefs = preferences_with(uuid4(), {"hiking": 0.9})

        boost = calculate_preference_boost(75, candidate, prefs)

        assert boost == pytest.approx(9.0)
        assert apply_boost(75, boost) == 84

    def test_interest_part_is_averaged(self):
        candidate = make_profile(tags=["hiking", "cooking", "chess"])
        prefs = preferences_with(uuid4(), {"hiking": 1.0, "cooking": 0.2})
        assert calculate_preference_boost(50, candidate, prefs) == pytest.approx(6.0)

    def test_history_bonus_within_window(self):
        candidate = make_profile(tags=["chess"])
        prefs = preferences_with(uuid4(), accepted_scores=[80])
        assert calculate_preference_boost(75, candidate, prefs) == pytest.approx(5.0)
        assert calculate_preference_boost(70, candidate, prefs) == pytest.approx(0.0)

    def test_no_history_no_bonus(self):
        """A zero average must not grant the bonus to low base scores."""
        candidate = make_profile(tags=["chess"])
        prefs = preferences_with(uuid4())
        assert calculate_preference_boost(5, candidate, prefs) == 0.0

    def test_boost_capped_at_15(self):
        candidate = make_profile(tags=["hiking"])
        prefs = preferences_with(uuid4(), {"hiking": 1.0}, accepted_scores=[95])
        boost = calculate_preference_boost(98, candidate, prefs)
        assert boost == pytest.approx(15.0)
        assert apply_boost(98, boost) == 100

    def test_no_preferences(self):
        assert calculate_preference_boost(60, make_profile(), None) == 0.0

    def test_boost_rounds_half_up(self):
        assert apply_boost(70, 4.5) == 75


class TestMatchRanker:
    """Test ranking a candidate pool."""

    @pytest.fixture
    def requester(self, profile_store):
        return profile_store.add(make_profile(display_name="Requester"))

    @pytest.mark.asyncio
    async def test_returns_exactly_max_results_sorted(self, profile_store, preference_store, requester):
        scores = {"Ana": 40, "Ben": 90, "Cem": 70, "Dia": 55, "Eli": 85}
        for name in scores:
            profile_store.add(make_profile(display_name=name))
        ranker = make_ranker(profile_store, preference_store, PerCandidateOracle(scores))

        result = await ranker.rank(requester.id, max_results=3)

        assert len(result.candidates) == 3
        assert [c.display_name for c in result.candidates] == ["Ben", "Eli", "Cem"]
        adjusted = [c.adjusted_score for c in result.candidates]
        assert adjusted == sorted(adjusted, reverse=True)
        assert result.total_candidates == 5
        assert result.skipped_candidates == 0

    @pytest.mark.asyncio
    async def test_pool_is_oversampled(self, profile_store, preference_store, requester):
        ranker = make_ranker(profile_store, preference_store, StubOracle())
        await ranker.rank(requester.id, max_results=4)
        assert profile_store.pool_limits == [8]

    @pytest.mark.asyncio
    async def test_default_max_results(self, profile_store, preference_store, requester):
        ranker = make_ranker(profile_store, preference_store, StubOracle(), default_max_results=7)
        await ranker.rank(requester.id)
        assert profile_store.pool_limits == [14]

    @pytest.mark.asyncio
    async def test_ties_keep_pool_order(self, profile_store, preference_store, requester):
        candidates = [profile_store.add(make_profile()) for _ in range(4)]
        ranker = make_ranker(profile_store, preference_store, StubOracle(70))

        result = await ranker.rank(requester.id, max_results=4)

        assert [c.candidate_id for c in result.candidates] == [c.id for c in candidates]

    @pytest.mark.asyncio
    async def test_preferences_reorder_candidates(self, profile_store, preference_store, requester):
        plain = profile_store.add(make_profile(tags=["cooking", "chess"], display_name="Plain"))
        hiker = profile_store.add(make_profile(tags=["hiking", "chess", "opera"], display_name="Hiker"))
        preference_store.put(preferences_with(requester.id, {"hiking": 1.0}))
        ranker = make_ranker(profile_store, preference_store, StubOracle(70))

        result = await ranker.rank(requester.id, max_results=2)

        assert [c.candidate_id for c in result.candidates] == [hiker.id, plain.id]
        hiker_result, plain_result = result.candidates
        assert plain_result.base_score > hiker_result.base_score
        assert result.preferences_applied is True
        for candidate in result.candidates:
            assert 0.0 <= candidate.boost <= 15.0
            assert candidate.adjusted_score <= 100
            assert candidate.preferences_applied is True

    @pytest.mark.asyncio
    async def test_without_preferences_adjusted_equals_base(self, profile_store, preference_store, requester):
        profile_store.add(make_profile())
        ranker = make_ranker(profile_store, preference_store, StubOracle(70))

        result = await ranker.rank(requester.id, max_results=1)

        candidate = result.candidates[0]
        assert result.preferences_applied is False
        assert candidate.boost == 0.0
        assert candidate.adjusted_score == candidate.base_score

    @pytest.mark.asyncio
    async def test_oracle_failing_everywhere_still_ranks(self, profile_store, preference_store, requester):
        for _ in range(3):
            profile_store.add(make_profile())
        ranker = make_ranker(profile_store, preference_store, StubOracle(error=RuntimeError("down")))

        result = await ranker.rank(requester.id, max_results=3)

        assert len(result.candidates) == 3
        assert all(c.used_fallback for c in result.candidates)

    @pytest.mark.asyncio
    async def test_empty_pool(self, profile_store, preference_store, requester):
        ranker = make_ranker(profile_store, preference_store, StubOracle())
        result = await ranker.rank(requester.id, max_results=5)
        assert result.candidates == []
        assert result.total_candidates == 0
        assert result.preferences_applied is False

    @pytest.mark.asyncio
    async def test_empty_pool_still_reports_learned_preferences(
        self, profile_store, preference_store, requester
    ):
        preference_store.put(preferences_with(requester.id, {"hiking": 0.9}))
        ranker = make_ranker(profile_store, preference_store, StubOracle())

        result = await ranker.rank(requester.id, max_results=5)

        assert result.candidates == []
        assert result.preferences_applied is True

    @pytest.mark.asyncio
    async def test_unknown_requester(self, profile_store, preference_store):
        ranker = make_ranker(profile_store, preference_store, StubOracle())
        with pytest.raises(NotFoundError):
            await ranker.rank(uuid4(), max_results=5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_results", [0, 101, -1, "3", 2.5])
    async def test_invalid_max_results_fails_before_io(self, profile_store, preference_store, requester, max_results):
        ranker = make_ranker(profile_store, preference_store, StubOracle())
        with pytest.raises(ValidationError):
            await ranker.rank(requester.id, max_results=max_results)
        assert profile_store.pool_limits == []

    @pytest.mark.asyncio
    async def test_unscoreable_candidates_are_skipped(self, profile_store, preference_store, requester):
        good = profile_store.add(make_profile())
        profile_store.add(make_profile())

        class FlakyScorer(CompatibilityScorer):
            async def score(self, profile_a, profile_b, cancellation=None):
                if profile_b.id != good.id:
                    raise NotFoundError("vanished", subject_id=profile_b.id)
                return await super().score(profile_a, profile_b, cancellation)

        ranker = MatchRanker(profile_store, preference_store, FlakyScorer(StubOracle()))

        result = await ranker.rank(requester.id, max_results=5)

        assert [c.candidate_id for c in result.candidates] == [good.id]
        assert result.skipped_candidates == 1

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, profile_store, preference_store, requester):
        for _ in range(6):
            profile_store.add(make_profile())
        oracle = StubOracle(60, delay=0.01)
        ranker = make_ranker(profile_store, preference_store, oracle, max_concurrency=2)

        result = await ranker.rank(requester.id, max_results=6)

        assert len(result.candidates) == 6
        assert oracle.max_in_flight <= 2

    @pytest.mark.asyncio
    async def test_cancelled_ranking(self, profile_store, preference_store, requester):
        profile_store.add(make_profile())
        token = CancellationToken()
        token.cancel()
        ranker = make_ranker(profile_store, preference_store, StubOracle())

        with pytest.raises(OperationCancelledError):
            await ranker.rank(requester.id, max_results=1, cancellation=token)

    @pytest.mark.asyncio
    async def test_cancelled_candidate_stops_in_flight_siblings(
        self, profile_store, preference_store, requester
    ):
        """Oracle calls still running for other candidates are cancelled too."""
        profile_store.add(make_profile())
        profile_store.add(make_profile())
        doomed = profile_store.add(make_profile())

        class CancellingScorer(CompatibilityScorer):
            async def score(self, profile_a, profile_b, cancellation=None):
                if profile_b.id == doomed.id:
                    await asyncio.sleep(0.01)
                    raise OperationCancelledError("client disconnected")
                return await super().score(profile_a, profile_b, cancellation)

        oracle = StubOracle(60, delay=3.0)
        ranker = MatchRanker(
            profile_store, preference_store, CancellingScorer(oracle), max_concurrency=5
        )

        with pytest.raises(OperationCancelledError):
            await ranker.rank(requester.id, max_results=3)

        assert oracle.calls
        assert oracle.in_flight == 0

    def test_invalid_construction(self, profile_store, preference_store):
        with pytest.raises(ValueError):
            make_ranker(profile_store, preference_store, StubOracle(), max_concurrency=0)
        with pytest.raises(ValidationError):
            make_ranker(profile_store, preference_store, StubOracle(), default_max_results=0)
