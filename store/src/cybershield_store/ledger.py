"""Digital detox points ledger.

Profiles and screen-time logs live under separate keys. Every operation
writes the logs first and then adjusts the owning profile's total by the
change in points, so a profile's total equals the sum of its logs' points
(floored at 0) unless an operator overrides it with set_absolute().
"""

import logging
from typing import Protocol, Sequence

from cybershield_shared import (
    CollectionCodec,
    EvidenceAnalysis,
    ScreenTimeLog,
    SubmissionResult,
    UserProfile,
)

from .context import StorageKey, StoreContext, new_id
from .errors import (
    DuplicateSubmissionError,
    InvalidEvidenceError,
    StorageFullError,
    UnknownProfileError,
)
from .events import ChangeEvent

logger = logging.getLogger(__name__)


class EvidenceAnalyzer(Protocol):
    """External service that reads hours from a screenshot."""

    def __call__(self, image_base64: str) -> EvidenceAnalysis: ...


def normalize_email(email: str) -> str:
    return email.strip()


def points_for_hours(hours: float) -> int:
    if hours < 3:
        return 100
    if hours < 6:
        return 50
    return 0


class DetoxLedger:
    def __init__(self, ctx: StoreContext):
        self._ctx = ctx
        self._profiles = CollectionCodec(UserProfile)
        self._logs = CollectionCodec(ScreenTimeLog)

    def profiles(self) -> list[UserProfile]:
        return self._profiles.decode(self._ctx.backend.get(StorageKey.DETOX_USERS))

    def logs(self) -> list[ScreenTimeLog]:
        return self._logs.decode(self._ctx.backend.get(StorageKey.DETOX_LOGS))

    def logs_for(self, email: str) -> list[ScreenTimeLog]:
        """Logs for one email, newest first."""
        email = normalize_email(email)
        mine = [log for log in self.logs() if log.email == email]
        return sorted(mine, key=lambda log: log.timestamp, reverse=True)

    def profile(self, email: str) -> UserProfile | None:
        return _find_profile(self.profiles(), normalize_email(email))

    def login(self, email: str, name: str) -> UserProfile:
        """Get or create the profile for an email, refreshing its name."""
        email = normalize_email(email)
        name = name.strip()
        if not email or not name:
            raise ValueError("Email and name are required")

        with self._ctx.lock:
            profiles = self.profiles()
            profile = _find_profile(profiles, email)
            if profile is not None and profile.name == name:
                return profile
            if profile is None:
                profile = UserProfile(email=email, name=name, joined_at=self._ctx.now())
                profiles.append(profile)
                logger.info("New detox profile for %s", email)
            else:
                profile.name = name
            self._save_profiles(profiles)
        self._ctx.notify(ChangeEvent.LEDGER)
        return profile

    def has_submitted_today(self, email: str) -> bool:
        email = normalize_email(email)
        today = self._ctx.today()
        return any(log.email == email and log.date_str == today for log in self.logs())

    def submit(
        self, email: str, hours: float, evidence: str | None = None
    ) -> SubmissionResult:
        """Record today's screen time and award points.

        Raises DuplicateSubmissionError if the email already has a log for
        today, UnknownProfileError if it never logged in. Neither changes state.
        """
        email = normalize_email(email)
        if hours < 0:
            raise ValueError(f"Hours cannot be negative: {hours}")
        points = points_for_hours(hours)
        now = self._ctx.now()
        today = now.date().isoformat()

        with self._ctx.lock:
            logs = self.logs()
            if any(log.email == email and log.date_str == today for log in logs):
                raise DuplicateSubmissionError(email, today)
            profiles = self.profiles()
            profile = _find_profile(profiles, email)
            if profile is None:
                raise UnknownProfileError(email)

            log = ScreenTimeLog(
                id=new_id(),
                email=email,
                date_str=today,
                hours=hours,
                points=points,
                timestamp=now,
                image_base64=evidence,
            )
            previous = self._ctx.backend.get(StorageKey.DETOX_LOGS)
            self._save_logs([*logs, log], changed_id=log.id)
            profile.total_points += points
            self._save_profiles_or_restore(profiles, previous)

        logger.info(
            "Detox submission for %s: %.2fh -> %d points (total %d)",
            email,
            hours,
            points,
            profile.total_points,
        )
        self._ctx.notify(ChangeEvent.LEDGER)
        return SubmissionResult(points=points, new_total=profile.total_points)

    def submit_evidence(
        self,
        email: str,
        image_base64: str,
        analyzer: EvidenceAnalyzer,
    ) -> SubmissionResult:
        """Analyze a screenshot and submit the hours it shows."""
        email = normalize_email(email)
        if self.has_submitted_today(email):
            raise DuplicateSubmissionError(email, self._ctx.today())
        analysis = analyzer(image_base64)
        if not analysis.valid:
            logger.info("Rejected screenshot from %s", email)
            raise InvalidEvidenceError()
        return self.submit(email, analysis.hours, image_base64)

    def correct(self, log_id: str, new_points: int) -> None:
        """Operator correction of one log's points; 0 invalidates the log."""
        if new_points < 0:
            raise ValueError(f"Points cannot be negative: {new_points}")

        with self._ctx.lock:
            logs = self.logs()
            log = next((entry for entry in logs if entry.id == log_id), None)
            if log is None:
                logger.debug("Log %s not found, nothing to correct", log_id)
                return
            delta = new_points - log.points
            log.points = new_points
            previous = self._ctx.backend.get(StorageKey.DETOX_LOGS)
            self._save_logs(logs, changed_id=log.id)

            profiles = self.profiles()
            profile = _find_profile(profiles, log.email)
            if profile is not None:
                profile.total_points = max(0, profile.total_points + delta)
                self._save_profiles_or_restore(profiles, previous)

        logger.info("Corrected log %s by %+d points", log_id, delta)
        self._ctx.notify(ChangeEvent.LEDGER)

    def retract(self, log_id: str) -> None:
        """Delete a log and take its points back."""
        with self._ctx.lock:
            logs = self.logs()
            log = next((entry for entry in logs if entry.id == log_id), None)
            if log is None:
                logger.debug("Log %s not found, nothing to retract", log_id)
                return
            previous = self._ctx.backend.get(StorageKey.DETOX_LOGS)
            self._save_logs([entry for entry in logs if entry.id != log_id])

            profiles = self.profiles()
            profile = _find_profile(profiles, log.email)
            if profile is not None:
                profile.total_points = max(0, profile.total_points - log.points)
                self._save_profiles_or_restore(profiles, previous)

        logger.info("Retracted log %s (%d points)", log_id, log.points)
        self._ctx.notify(ChangeEvent.LEDGER)

    def set_absolute(self, email: str, new_total: int) -> None:
        """Operator override of a profile's total.

        Bypasses the logs, so the total no longer matches their sum until
        the logs are adjusted too.
        """
        email = normalize_email(email)
        with self._ctx.lock:
            profiles = self.profiles()
            profile = _find_profile(profiles, email)
            if profile is None:
                return
            old_total = profile.total_points
            profile.total_points = max(0, new_total)
            self._save_profiles(profiles)

        logger.warning(
            "Points for %s overridden: %d -> %d", email, old_total, profile.total_points
        )
        self._ctx.notify(ChangeEvent.LEDGER)

    def rank(self) -> list[UserProfile]:
        """Profiles by total points, highest first; ties keep stored order."""
        return sorted(self.profiles(), key=lambda p: p.total_points, reverse=True)

    def champion(self) -> UserProfile | None:
        ranking = self.rank()
        return ranking[0] if ranking else None

    def _save_profiles(self, profiles: Sequence[UserProfile]) -> None:
        self._ctx.policy.write(StorageKey.DETOX_USERS, self._profiles.encode(profiles))

    def _save_profiles_or_restore(
        self, profiles: Sequence[UserProfile], previous_logs: str | None
    ) -> None:
        """Save profiles; if that fails, put the logs back as they were."""
        try:
            self._save_profiles(profiles)
        except StorageFullError:
            logger.error("Profile update failed, restoring previous detox logs")
            try:
                if previous_logs is None:
                    self._ctx.backend.remove(StorageKey.DETOX_LOGS)
                else:
                    self._ctx.policy.write(StorageKey.DETOX_LOGS, previous_logs)
            except StorageFullError:
                logger.exception("Could not restore detox logs; totals may be out of step")
            raise

    def _save_logs(
        self, logs: Sequence[ScreenTimeLog], changed_id: str | None = None
    ) -> None:
        def without_changed_evidence() -> str:
            return self._logs.encode(
                [
                    log.model_copy(update={"image_base64": None}) if log.id == changed_id else log
                    for log in logs
                ]
            )

        def without_any_evidence() -> str:
            return self._logs.encode(
                [log.model_copy(update={"image_base64": None}) for log in logs]
            )

        self._ctx.policy.write(
            StorageKey.DETOX_LOGS,
            self._logs.encode(logs),
            fallbacks=(without_changed_evidence, without_any_evidence),
        )


def _find_profile(profiles: Sequence[UserProfile], email: str) -> UserProfile | None:
    return next((p for p in profiles if p.email == email), None)
