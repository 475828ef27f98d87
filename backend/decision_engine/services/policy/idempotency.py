"""
Idempotency Coordinator

Exactly-once execution of an operation per idempotency key, plus mutual
exclusion per logical resource across different keys.

Both locks are leases taken with the cache backend's atomic
acquire_lease (set-if-absent-or-owned, with TTL). A holder that crashes is
released by lease expiry; the lock TTL must exceed the expected duration of
the wrapped operation.

Record lifecycle, all under idempotency:<key>:
    in_progress (lock TTL) -> completed (ttl, default 24h)
                           -> failed    (failure TTL, default 5 min)
A cached failure is replayed as the same error until it expires.
"""
import logging
import re
import time
import uuid
from typing import Any, Callable, Mapping, Optional

from ...config import (
    IDEMPOTENCY_CONTENTION_WAIT_SECONDS,
    IDEMPOTENCY_FAILURE_TTL_SECONDS,
    IDEMPOTENCY_LOCK_TTL_SECONDS,
    IDEMPOTENCY_TTL_SECONDS,
)
from ...exceptions import (
    IdempotencyConflict,
    ValidationError,
    rebuild_error,
    serialize_error,
)
from ...models.ssot import IdempotencyRecord, IdempotencyStatus
from ..audit_trail import AuditAction, AuditTrail
from ..cache import CacheBackend, CacheKeys
from .hashing import short_hash

logger = logging.getLogger(__name__)


# =============================================================================
# KEY FORMAT
# =============================================================================

UUID_KEY_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
PREFIXED_KEY_PATTERN = re.compile(r"^[a-z0-9_-]+:[a-z0-9]{16,}$")

IDEMPOTENCY_HEADERS = ("idempotency-key", "x-idempotency-key")


def validate_idempotency_key(key: Any) -> bool:
    """UUID (8-4-4-4-12 hex) or prefix:hash with a hash of 16+ characters."""
    if not isinstance(key, str) or not key:
        return False
    return bool(UUID_KEY_PATTERN.match(key) or PREFIXED_KEY_PATTERN.match(key))


def require_valid_key(key: Any) -> str:
    if not validate_idempotency_key(key):
        raise ValidationError(
            "Invalid idempotency key: expected a UUID or 'prefix:hash' "
            "(lowercase prefix, 16+ character hash)",
            field="idempotency_key",
        )
    return key


def generate_idempotency_key(data: Any, prefix: str = "op") -> str:
    """Deterministic key for a payload: prefix:<16 hex of its canonical hash>."""
    key = f"{prefix.lower()}:{short_hash(data)}"
    return require_valid_key(key)


def extract_idempotency_key(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    """Read Idempotency-Key (or X-Idempotency-Key) from request headers."""
    if not headers:
        return None
    lowered = {str(name).lower(): value for name, value in headers.items()}
    for name in IDEMPOTENCY_HEADERS:
        value = lowered.get(name)
        if value:
            return value.strip()
    return None


# =============================================================================
# COORDINATOR
# =============================================================================

class IdempotencyCoordinator:
    """
    Wraps an operation so it runs at most once per key.

    Concurrent callers with the same key either get the memoized result or an
    IdempotencyConflict after one short wait-and-recheck. Callers with
    different keys but the same resource never run their operations at the
    same time.
    """

    def __init__(
        self,
        cache: CacheBackend,
        default_ttl: float = IDEMPOTENCY_TTL_SECONDS,
        default_lock_ttl: float = IDEMPOTENCY_LOCK_TTL_SECONDS,
        failure_ttl: float = IDEMPOTENCY_FAILURE_TTL_SECONDS,
        contention_wait: float = IDEMPOTENCY_CONTENTION_WAIT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        token_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], float] = time.time,
        audit: Optional[AuditTrail] = None,
    ):
        self.cache = cache
        self.default_ttl = default_ttl
        self.default_lock_ttl = default_lock_ttl
        self.failure_ttl = failure_ttl
        self.contention_wait = contention_wait
        self._sleep = sleep
        self._token_factory = token_factory
        self._clock = clock
        self.audit = audit or AuditTrail()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def execute(
        self,
        key: str,
        resource: str,
        operation: Callable[[], Any],
        ttl: Optional[float] = None,
        lock_ttl: Optional[float] = None,
    ) -> Any:
        """
        Run operation exactly once for key while holding the resource lock.

        The operation's return value must be JSON-serializable; it is cached
        and returned verbatim to every later caller with the same key.

        Raises:
            ValidationError: malformed key (before any lock is attempted)
            IdempotencyConflict: key or resource held by another caller
            Any exception raised by operation (also cached and replayed)
        """
        require_valid_key(key)
        ttl = self.default_ttl if ttl is None else ttl
        lock_ttl = self.default_lock_ttl if lock_ttl is None else lock_ttl

        # 1. True no-op retry
        record = self._load(key)
        if record is not None and record.status != IdempotencyStatus.IN_PROGRESS:
            return self._replay(key, record)

        owner = self._token_factory()
        key_lock = CacheKeys.idempotency_lock(key)
        resource_lock = CacheKeys.resource_lock(resource)

        # 2. Key lock
        if not self._acquire(key_lock, owner, lock_ttl, key, resource, scope="key"):
            record = self._load(key)
            if record is not None and record.status != IdempotencyStatus.IN_PROGRESS:
                return self._replay(key, record)
            raise IdempotencyConflict(
                f"Operation already in progress for idempotency key {key}",
                previous_result=record.result if record else None,
                retry_after=self.contention_wait,
            )

        try:
            # Another caller may have finished between our lookup and the lease
            record = self._load(key)
            if record is not None and record.status != IdempotencyStatus.IN_PROGRESS:
                return self._replay(key, record)

            # 3. Resource lock
            if not self._acquire(resource_lock, owner, lock_ttl, key, resource, scope="resource"):
                raise IdempotencyConflict(
                    f"Resource {resource} is busy with another operation",
                    retry_after=self.contention_wait,
                )

            try:
                # 4. Mark in progress
                self._store(key, IdempotencyRecord(
                    status=IdempotencyStatus.IN_PROGRESS,
                    timestamp=self._clock(),
                    owner=owner,
                ), lock_ttl)

                # 5-7. Run and cache the outcome
                try:
                    result = operation()
                except Exception as e:
                    self._store(key, IdempotencyRecord(
                        status=IdempotencyStatus.FAILED,
                        timestamp=self._clock(),
                        owner=owner,
                        error=serialize_error(e),
                    ), self.failure_ttl)
                    logger.error(f"Idempotent operation {key} failed: {type(e).__name__}: {e}")
                    raise

                self._store(key, IdempotencyRecord(
                    status=IdempotencyStatus.COMPLETED,
                    timestamp=self._clock(),
                    owner=owner,
                    result=result,
                ), ttl)
                logger.info(f"Idempotent operation {key} completed on {resource}")
                return result
            finally:
                self._release(resource_lock, owner)
        finally:
            self._release(key_lock, owner)

    def check(self, key: str) -> Optional[IdempotencyRecord]:
        """
        Status probe. Returns the record (None if never seen or expired).

        Raises IdempotencyConflict while the operation is still in progress.
        """
        require_valid_key(key)
        record = self._load(key)
        if record is not None and record.status == IdempotencyStatus.IN_PROGRESS:
            raise IdempotencyConflict(
                f"Operation in progress for idempotency key {key}",
                retry_after=self.contention_wait,
            )
        return record

    def invalidate(self, key: str) -> None:
        """Administrative reset: forget the record and its lock."""
        require_valid_key(key)
        self.cache.delete(CacheKeys.idempotency_record(key))
        self.cache.delete(CacheKeys.idempotency_lock(key))
        logger.info(f"Idempotency key {key} invalidated")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _load(self, key: str) -> Optional[IdempotencyRecord]:
        data = self.cache.get(CacheKeys.idempotency_record(key))
        if not data:
            return None
        return IdempotencyRecord.from_dict(data)

    def _store(self, key: str, record: IdempotencyRecord, ttl: float) -> None:
        self.cache.set(CacheKeys.idempotency_record(key), record.to_dict(), ttl)

    def _replay(self, key: str, record: IdempotencyRecord) -> Any:
        if record.status == IdempotencyStatus.FAILED:
            logger.info(f"Replaying cached failure for idempotency key {key}")
            raise rebuild_error(record.error or {})
        logger.info(f"Returning cached result for idempotency key {key}")
        return record.result

    def _acquire(
        self,
        lock_key: str,
        owner: str,
        lock_ttl: float,
        key: str,
        resource: str,
        scope: str,
    ) -> bool:
        """One attempt, then one short wait and a second attempt."""
        if self.cache.acquire_lease(lock_key, owner, lock_ttl):
            return True

        logger.warning(f"Lock contention on {scope} lock {lock_key}; waiting {self.contention_wait}s")
        self.audit.record(
            AuditAction.LOCK_CONTENTION,
            entity_type="idempotency_key" if scope == "key" else "resource",
            entity_id=key if scope == "key" else resource,
            scope=scope,
            resource=resource,
        )
        self._sleep(self.contention_wait)
        return self.cache.acquire_lease(lock_key, owner, lock_ttl)

    def _release(self, lock_key: str, owner: str) -> None:
        try:
            released = self.cache.release_lease(lock_key, owner)
        except Exception as e:
            logger.warning(f"Failed to release lock {lock_key}: {e}")
            return
        if not released:
            logger.warning(f"Lock {lock_key} had already expired or changed owner before release")
