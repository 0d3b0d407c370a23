"""
Access Gate — PIN verification and brute-force lockout for document lockers.

Lockout state is handled by pure functions over an AttemptState; the
AccessGate performs the serialized read-modify-write against the store.
A locker is Active while count < max and LockedOut until locked_until.
Expiry is evaluated lazily on the next verification.
"""
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from vault.config import Settings, get_settings
from vault.exceptions import (
    AuthenticationError,
    ConcurrentUpdateError,
    DuplicateError,
    LockedOutError,
    NotFoundError,
    ValidationError,
)
from vault.models.locker import DocumentLocker
from vault.services.document_store import DocumentStore, access_entry
from vault.utils.hashing import hash_pin, verify_pin
from vault.utils.locks import LOCKER_LOCKS, KeyedLock
from vault.utils.logger import get_logger
from vault.utils.validators import validate_pin

logger = get_logger("gate")

VERIFY_RETRIES = 3


@dataclass(frozen=True)
class AttemptState:
    count: int = 0
    last_attempt_at: Optional[datetime] = None
    locked_until: Optional[datetime] = None


@dataclass(frozen=True)
class LockoutPolicy:
    max_failed_attempts: int = 3
    lockout_duration_minutes: int = 15


@dataclass(frozen=True)
class VerifyOutcome:
    ok: bool
    attempts_remaining: int


def is_locked(state: AttemptState, now: datetime) -> bool:
    return state.locked_until is not None and state.locked_until > now


def record_failure(state: AttemptState, policy: LockoutPolicy, now: datetime) -> AttemptState:
    count = state.count + 1
    locked_until = state.locked_until
    if count >= policy.max_failed_attempts:
        locked_until = now + timedelta(minutes=policy.lockout_duration_minutes)
    return AttemptState(count=count, last_attempt_at=now, locked_until=locked_until)


def cleared() -> AttemptState:
    return AttemptState()


def expire_lockout(state: AttemptState, now: datetime, reset_count: bool) -> AttemptState:
    """Drop a lock whose time has passed; optionally start the user over with a fresh count."""
    if state.locked_until is None or state.locked_until > now:
        return state
    if reset_count:
        return cleared()
    return replace(state, locked_until=None)


def attempts_remaining(state: AttemptState, policy: LockoutPolicy) -> int:
    return max(0, policy.max_failed_attempts - state.count)


def minutes_until(moment: datetime, now: datetime) -> int:
    return max(1, math.ceil((moment - now).total_seconds() / 60))


def state_of(locker: DocumentLocker) -> AttemptState:
    return AttemptState(
        count=locker.failed_attempt_count or 0,
        last_attempt_at=locker.last_failed_attempt_at,
        locked_until=locker.locked_until,
    )


def policy_of(locker: DocumentLocker) -> LockoutPolicy:
    return LockoutPolicy(
        max_failed_attempts=locker.max_failed_attempts,
        lockout_duration_minutes=locker.lockout_duration_minutes,
    )


def _apply(locker: DocumentLocker, state: AttemptState) -> None:
    locker.failed_attempt_count = state.count
    locker.last_failed_attempt_at = state.last_attempt_at
    locker.locked_until = state.locked_until


class AccessGate:
    """Guards every locker operation behind a PIN check."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        locks: KeyedLock = LOCKER_LOCKS,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock
        self.locks = locks

    def create_locker(self, user_id: str, pin: str, confirm_pin: str, request_info: Optional[Dict] = None) -> DocumentLocker:
        if not pin or not confirm_pin:
            raise ValidationError("PIN and confirmation PIN are required")
        if pin != confirm_pin:
            raise ValidationError("PIN and confirmation PIN do not match")
        if not validate_pin(pin):
            raise ValidationError("PIN must be between 4 and 6 digits")
        if self.store.get_locker_by_user(user_id):
            raise DuplicateError("Document locker already exists")

        now = self.clock()
        locker = DocumentLocker(
            user_id=user_id,
            pin_hash=hash_pin(pin, rounds=self.settings.PIN_HASH_ROUNDS),
            max_failed_attempts=self.settings.DEFAULT_MAX_FAILED_ATTEMPTS,
            lockout_duration_minutes=self.settings.DEFAULT_LOCKOUT_MINUTES,
            session_timeout_minutes=self.settings.DEFAULT_SESSION_TIMEOUT_MINUTES,
            failed_attempt_count=0,
            document_ids=[],
            access_log=[],
            is_active=True,
            created_at=now,
            last_accessed=now,
        )
        self.store.append_access_log(locker, access_entry("unlock", request_info, now), commit=False)
        locker = self.store.add_locker(locker)
        logger.info(f"Locker {locker.id} created for user {user_id}")
        return locker

    def check_exists(self, user_id: str) -> Dict[str, bool]:
        locker = self.store.get_locker_by_user(user_id)
        if locker is None:
            return {"exists": False, "is_locked": False}
        return {"exists": True, "is_locked": is_locked(state_of(locker), self.clock())}

    def verify(self, locker_id: str, pin: str, request_info: Optional[Dict] = None) -> VerifyOutcome:
        """Check `pin`, counting a mismatch toward lockout. Raises LockedOutError while locked."""
        for attempt in range(1, VERIFY_RETRIES + 1):
            try:
                with self.locks.hold(locker_id):
                    return self._verify_once(locker_id, pin, request_info)
            except ConcurrentUpdateError:
                if attempt == VERIFY_RETRIES:
                    raise
                logger.warning(f"Locker {locker_id} changed during verification, retrying ({attempt})")

    def _verify_once(self, locker_id: str, pin: str, request_info: Optional[Dict]) -> VerifyOutcome:
        locker = self.store.get_locker(locker_id, for_update=True)
        if locker is None:
            raise NotFoundError("Document locker not found")

        now = self.clock()
        policy = policy_of(locker)
        state = expire_lockout(state_of(locker), now, self.settings.RESET_ATTEMPTS_ON_LOCKOUT_EXPIRY)

        if is_locked(state, now):
            raise LockedOutError(
                retry_after=state.locked_until,
                retry_after_minutes=minutes_until(state.locked_until, now),
            )

        if verify_pin(pin, locker.pin_hash):
            _apply(locker, cleared())
            self.store.append_access_log(locker, access_entry("unlock", request_info, now), commit=False)
            self.store.save_locker(locker)
            return VerifyOutcome(ok=True, attempts_remaining=policy.max_failed_attempts)

        state = record_failure(state, policy, now)
        _apply(locker, state)
        self.store.append_access_log(locker, access_entry("failed_attempt", request_info, now, success=False), commit=False)
        if is_locked(state, now):
            self.store.append_access_log(locker, access_entry("lock", request_info, now, success=False), commit=False)
            logger.warning(f"Locker {locker_id} locked until {state.locked_until.isoformat()} after {state.count} failed attempts")
        else:
            logger.warning(f"Failed PIN attempt {state.count}/{policy.max_failed_attempts} on locker {locker_id}")
        self.store.save_locker(locker)
        return VerifyOutcome(ok=False, attempts_remaining=attempts_remaining(state, policy))

    def authorize(self, user_id: str, pin: Optional[str], request_info: Optional[Dict] = None) -> DocumentLocker:
        """Resolve the caller's locker and require a correct PIN for it."""
        if not pin:
            raise ValidationError("Locker PIN is required")
        locker = self.store.get_locker_by_user(user_id)
        if locker is None:
            raise NotFoundError("Document locker not found")
        outcome = self.verify(locker.id, pin, request_info)
        if not outcome.ok:
            raise AuthenticationError(attempts_remaining=outcome.attempts_remaining)
        return locker

    def change_pin(
        self,
        user_id: str,
        current_pin: str,
        new_pin: str,
        confirm_new_pin: str,
        request_info: Optional[Dict] = None,
    ) -> DocumentLocker:
        if not current_pin or not new_pin or not confirm_new_pin:
            raise ValidationError("Current PIN, new PIN, and confirmation are required")
        if new_pin != confirm_new_pin:
            raise ValidationError("New PIN and confirmation do not match")
        if not validate_pin(new_pin):
            raise ValidationError("PIN must be between 4 and 6 digits")

        locker = self.store.get_locker_by_user(user_id)
        if locker is None:
            raise NotFoundError("Document locker not found")
        outcome = self.verify(locker.id, current_pin, request_info)
        if not outcome.ok:
            raise AuthenticationError("Current PIN is incorrect", attempts_remaining=outcome.attempts_remaining)

        with self.locks.hold(locker.id):
            locker = self.store.get_locker(locker.id, for_update=True)
            locker.pin_hash = hash_pin(new_pin, rounds=self.settings.PIN_HASH_ROUNDS)
            self.store.append_access_log(locker, access_entry("change_pin", request_info, self.clock()), commit=False)
            self.store.save_locker(locker)
        logger.info(f"PIN changed for locker {locker.id}")
        return locker

    def reset_locker(self, user_id: str) -> list[str]:
        """Account reset: hard-delete the locker with all its documents; returns the removed file paths."""
        locker = self.store.get_locker_by_user(user_id)
        if locker is None:
            raise NotFoundError("Document locker not found")
        locker_id = locker.id
        with self.locks.hold(locker_id):
            file_paths = self.store.delete_locker(locker)
        logger.warning(f"Locker {locker_id} for user {user_id} reset, {len(file_paths)} documents removed")
        return file_paths
