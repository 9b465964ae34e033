"""Unit tests for UserPreferences, MatchRecord and Profile domain models."""

import pytest
from uuid import uuid4

from domain.matching import (
    GenderIdentity,
    MatchRecord,
    MatchStatus,
    Profile,
    UserPreferences,
    ValidationError,
)


class TestUserPreferences:
    """Test bounded weights and running statistics."""

    def test_interest_weight_bounds(self):
        prefs = UserPreferences(user_id=uuid4())
        prefs.update_interest_weight("hiking", 0.0)
        prefs.update_interest_weight("cooking", 1.0)
        with pytest.raises(ValidationError):
            prefs.update_interest_weight("travel", 1.01)
        with pytest.raises(ValidationError):
            prefs.update_interest_weight("travel", -0.1)
        with pytest.raises(ValidationError):
            prefs.update_interest_weight("travel", float("nan"))
        with pytest.raises(ValidationError):
            prefs.update_interest_weight("travel", float("inf"))
        assert prefs.interest_weights == {"hiking": 0.0, "cooking": 1.0}

    def test_interest_weight_tag_is_normalized(self):
        prefs = UserPreferences(user_id=uuid4())
        prefs.update_interest_weight("  Hiking ", 0.5)
        assert prefs.interest_weights == {"hiking": 0.5}

    def test_trait_preference_bounds(self):
        prefs = UserPreferences(user_id=uuid4())
        prefs.update_personality_trait_preference("compatible", -1.0)
        prefs.update_personality_trait_preference("similar", 1.0)
        with pytest.raises(ValidationError):
            prefs.update_personality_trait_preference("different", 1.5)
        with pytest.raises(ValidationError):
            prefs.update_personality_trait_preference("different", -1.01)
        with pytest.raises(ValidationError):
            prefs.update_personality_trait_preference("different", float("nan"))
        assert "different" not in prefs.personality_trait_preferences

    def test_running_mean_is_exact(self):
        prefs = UserPreferences(user_id=uuid4())
        for score in (70, 80, 90, 61):
            prefs.record_match_acceptance(score)
        assert prefs.match_acceptance_count == 4
        assert prefs.average_accepted_compatibility_score == pytest.approx((70 + 80 + 90 + 61) / 4)

    def test_acceptance_rejects_invalid_score(self):
        prefs = UserPreferences(user_id=uuid4())
        with pytest.raises(ValidationError):
            prefs.record_match_acceptance(120)
        assert prefs.match_acceptance_count == 0

    def test_acceptance_rate(self):
        prefs = UserPreferences(user_id=uuid4())
        assert prefs.acceptance_rate == 0.0
        prefs.record_match_acceptance(80)
        prefs.record_match_rejection()
        prefs.record_match_rejection()
        prefs.record_match_rejection()
        assert prefs.acceptance_rate == pytest.approx(0.25)

    def test_learning_session_is_stamped(self):
        prefs = UserPreferences(user_id=uuid4())
        assert prefs.last_learning_session_at is None
        prefs.record_learning_session()
        assert prefs.learning_session_count == 1
        assert prefs.last_learning_session_at is not None

    def test_clone_is_independent(self):
        prefs = UserPreferences(user_id=uuid4())
        prefs.update_interest_weight("hiking", 0.4)
        working = prefs.clone()
        working.update_interest_weight("hiking", 0.9)
        working.record_match_acceptance(90)
        assert prefs.interest_weights == {"hiking": 0.4}
        assert prefs.match_acceptance_count == 0


class TestMatchRecord:
    """Test match record invariants and status transitions."""

    def test_distinct_users_required(self):
        user_id = uuid4()
        with pytest.raises(ValidationError):
            MatchRecord(user_id_1=user_id, user_id_2=user_id, compatibility_score=50)

    def test_score_validated(self):
        with pytest.raises(ValidationError):
            MatchRecord(user_id_1=uuid4(), user_id_2=uuid4(), compatibility_score=101)

    def test_accept_from_pending(self):
        record = MatchRecord(user_id_1=uuid4(), user_id_2=uuid4(), compatibility_score=70)
        record.accept()
        assert record.status == MatchStatus.ACCEPTED
        assert record.accepted_at is not None

    def test_terminal_states_cannot_transition(self):
        record = MatchRecord(user_id_1=uuid4(), user_id_2=uuid4(), compatibility_score=70)
        record.reject()
        with pytest.raises(ValidationError):
            record.accept()
        with pytest.raises(ValidationError):
            record.reject()
        assert record.status == MatchStatus.REJECTED

    def test_other_user_id(self):
        a, b = uuid4(), uuid4()
        record = MatchRecord(user_id_1=a, user_id_2=b, compatibility_score=70)
        assert record.other_user_id(a) == b
        assert record.other_user_id(b) == a
        with pytest.raises(ValidationError):
            record.other_user_id(uuid4())


class TestProfile:
    """Test profile normalization and acceptance checks."""

    def test_tags_are_normalized(self):
        profile = Profile(id=uuid4(), interest_tags=frozenset({" Hiking", "COOKING", ""}))
        assert profile.interest_tags == frozenset({"hiking", "cooking"})

    def test_parse_interests(self):
        assert Profile.parse_interests("Hiking, cooking ,,") == frozenset({"hiking", "cooking"})
        assert Profile.parse_interests(None) == frozenset()

    def test_age_bounds_validated(self):
        with pytest.raises(ValidationError):
            Profile(id=uuid4(), min_age=40, max_age=30)
        with pytest.raises(ValidationError):
            Profile(id=uuid4(), age=-1)

    def test_accepts_age(self):
        profile = Profile(id=uuid4(), min_age=25, max_age=35)
        assert profile.accepts_age(25)
        assert profile.accepts_age(35)
        assert not profile.accepts_age(24)
        assert not profile.accepts_age(36)
        assert profile.accepts_age(None)

    def test_accepts_gender(self):
        profile = Profile(id=uuid4(), accepted_genders=frozenset({"female"}))
        assert profile.accepts_gender(GenderIdentity.FEMALE)
        assert not profile.accepts_gender(GenderIdentity.MALE)
