"""Tests for the detox points ledger."""

import random

import pytest

from cybershield_shared import EvidenceAnalysis
from cybershield_store import (
    DuplicateSubmissionError,
    InvalidEvidenceError,
    Store,
    UnknownProfileError,
    points_for_hours,
)

from .conftest import FakeClock

EMAIL = "sam@example.com"


def _total(store: Store, email: str = EMAIL) -> int:
    profile = store.detox.profile(email)
    assert profile is not None
    return profile.total_points


def _log_sum(store: Store, email: str = EMAIL) -> int:
    return sum(log.points for log in store.detox.logs_for(email))


class TestPointsForHours:
    @pytest.mark.parametrize(
        "hours, points",
        [(0.0, 100), (2.99, 100), (3.0, 50), (5.99, 50), (6.0, 0), (12.5, 0)],
    )
    def test_schedule(self, hours: float, points: int) -> None:
        assert points_for_hours(hours) == points


class TestLogin:
    def test_creates_profile_once(self, store: Store) -> None:
        first = store.detox.login(EMAIL, "Sam")
        second = store.detox.login(EMAIL, "Sam")

        assert first.total_points == 0
        assert second.email == first.email
        assert len(store.detox.profiles()) == 1

    def test_refreshes_name(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.login(EMAIL, "Samantha")

        (profile,) = store.detox.profiles()
        assert profile.name == "Samantha"

    def test_requires_email_and_name(self, store: Store) -> None:
        with pytest.raises(ValueError):
            store.detox.login(" ", "Sam")


class TestSubmit:
    def test_awards_points(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        result = store.detox.submit(EMAIL, 2.0)

        assert result.points == 100
        assert result.new_total == 100
        (log,) = store.detox.logs()
        assert log.date_str == "2024-01-15"
        assert log.hours == 2.0

    def test_second_submission_same_day_fails(self, store: Store, clock: FakeClock) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)
        clock.advance(hours=12)

        with pytest.raises(DuplicateSubmissionError) as exc_info:
            store.detox.submit(EMAIL, 1.0)

        assert "already uploaded" in str(exc_info.value)
        assert _total(store) == 100
        assert len(store.detox.logs()) == 1

    def test_next_day_is_allowed(self, store: Store, clock: FakeClock) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)
        clock.advance(days=1)

        result = store.detox.submit(EMAIL, 4.0)
        assert result.points == 50
        assert result.new_total == 150

    def test_day_is_local_calendar_day(self, store: Store, clock: FakeClock) -> None:
        # local clock is UTC+1; the day rolls over at local midnight
        clock.now = clock.now.replace(hour=23, minute=30)
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)
        assert store.detox.logs()[0].date_str == "2024-01-15"

        clock.advance(minutes=31)
        assert not store.detox.has_submitted_today(EMAIL)

    def test_unknown_profile(self, store: Store) -> None:
        with pytest.raises(UnknownProfileError):
            store.detox.submit(EMAIL, 2.0)
        assert store.detox.logs() == []

    def test_negative_hours(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        with pytest.raises(ValueError):
            store.detox.submit(EMAIL, -1.0)

    def test_has_submitted_today(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        assert not store.detox.has_submitted_today(EMAIL)
        store.detox.submit(EMAIL, 7.0)
        assert store.detox.has_submitted_today(EMAIL)
        assert not store.detox.has_submitted_today("other@example.com")

    def test_padded_email_matches_profile(self, store: Store) -> None:
        padded = f"  {EMAIL} "
        store.detox.login(padded, "Sam")

        result = store.detox.submit(padded, 2.0)

        assert result.new_total == 100
        assert store.detox.has_submitted_today(padded)
        assert store.detox.profile(padded).total_points == 100  # type: ignore[union-attr]
        assert [log.email for log in store.detox.logs_for(padded)] == [EMAIL]

        store.detox.set_absolute(padded, 40)
        assert store.detox.profile(EMAIL).total_points == 40  # type: ignore[union-attr]


class TestCorrectAndRetract:
    def test_scenario(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)
        (log,) = store.detox.logs()

        store.detox.correct(log.id, 30)
        assert _total(store) == 30
        assert store.detox.logs()[0].points == 30

        store.detox.retract(log.id)
        assert _total(store) == 0
        assert store.detox.logs() == []

    def test_retract_is_floored_at_zero(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)
        store.detox.set_absolute(EMAIL, 40)

        store.detox.retract(store.detox.logs()[0].id)
        assert _total(store) == 0

    def test_unknown_log_is_noop(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)

        store.detox.correct("missing", 0)
        store.detox.retract("missing")
        assert _total(store) == 100

    def test_negative_correction_rejected(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)
        with pytest.raises(ValueError):
            store.detox.correct(store.detox.logs()[0].id, -5)


class TestSetAbsolute:
    def test_overrides_total_without_touching_logs(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)

        store.detox.set_absolute(EMAIL, 500)
        assert _total(store) == 500
        assert _log_sum(store) == 100

    def test_clamps_and_ignores_unknown(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.set_absolute(EMAIL, -10)
        store.detox.set_absolute("nobody@example.com", 10)

        assert _total(store) == 0
        assert len(store.detox.profiles()) == 1


class TestRanking:
    def test_rank_and_champion(self, store: Store, clock: FakeClock) -> None:
        assert store.detox.champion() is None

        for email, hours in [("a@x", 7.0), ("b@x", 1.0), ("c@x", 4.0), ("d@x", 8.0)]:
            store.detox.login(email, email)
            store.detox.submit(email, hours)

        ranking = [p.email for p in store.detox.rank()]
        # ties keep stored order
        assert ranking == ["b@x", "c@x", "a@x", "d@x"]
        champion = store.detox.champion()
        assert champion is not None and champion.email == "b@x"


class TestSubmitEvidence:
    def test_valid_evidence(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        seen: list[str] = []

        def analyzer(image: str) -> EvidenceAnalysis:
            seen.append(image)
            return EvidenceAnalysis(valid=True, hours=2.5)

        result = store.detox.submit_evidence(EMAIL, "aW1hZ2U=", analyzer)

        assert seen == ["aW1hZ2U="]
        assert result.points == 100
        assert store.detox.logs()[0].image_base64 == "aW1hZ2U="

    def test_invalid_evidence(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        with pytest.raises(InvalidEvidenceError):
            store.detox.submit_evidence(
                EMAIL, "aW1hZ2U=", lambda image: EvidenceAnalysis(valid=False)
            )
        assert store.detox.logs() == []

    def test_duplicate_skips_analyzer(self, store: Store) -> None:
        store.detox.login(EMAIL, "Sam")
        store.detox.submit(EMAIL, 2.0)

        def analyzer(image: str) -> EvidenceAnalysis:
            raise AssertionError("analyzer should not be called")

        with pytest.raises(DuplicateSubmissionError):
            store.detox.submit_evidence(EMAIL, "aW1hZ2U=", analyzer)


@pytest.mark.parametrize("seed", range(25))
def test_total_matches_log_sum_for_random_operations(
    store: Store, clock: FakeClock, seed: int
) -> None:
    rng = random.Random(seed)
    store.detox.login(EMAIL, "Sam")
    store.detox.login("other@example.com", "Other")

    for _ in range(40):
        logs = store.detox.logs_for(EMAIL)
        op = rng.choice(["submit", "submit", "correct", "retract", "other"])

        if op == "submit":
            if rng.random() < 0.7:
                clock.advance(days=1)
            try:
                store.detox.submit(EMAIL, rng.uniform(0, 10))
            except DuplicateSubmissionError:
                pass
        elif op == "correct" and logs:
            store.detox.correct(rng.choice(logs).id, rng.randint(0, 150))
        elif op == "retract" and logs:
            store.detox.retract(rng.choice(logs).id)
        elif op == "other":
            try:
                store.detox.submit("other@example.com", rng.uniform(0, 10))
            except DuplicateSubmissionError:
                pass

        assert _total(store) == max(0, _log_sum(store))
        assert _total(store, "other@example.com") == _log_sum(store, "other@example.com")
