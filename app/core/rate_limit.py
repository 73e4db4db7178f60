"""Token bucket rate limiting backed by a single JSON state file.

Every operation loads the whole bucket map, mutates it and saves it back while
holding an exclusive ``flock`` on a sidecar lock file, so concurrent workers
cannot lose each other's updates.
"""
import fcntl
import json
import logging
import math
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, NamedTuple, Optional

from app.core.config import Settings

logger = logging.getLogger(__name__)


class Admission(NamedTuple):
    allowed: bool
    remaining: int
    reset_at: int


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class RateLimitStateStore:
    """Whole-map JSON blob store with an exclusive lock per access."""

    def __init__(self, path: str):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    @contextmanager
    def locked(self) -> Iterator[None]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def load(self) -> dict:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Rate limit state unreadable, starting empty: {e}")
            return {}
        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except ValueError as e:
            logger.warning(f"Rate limit state corrupt, starting empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, data: dict) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".rate_limit-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class TokenBucketRateLimiter:
    """Per-identifier token bucket with whole-window refills.

    A bucket gains ``capacity`` tokens for every full ``window`` seconds since
    its last refill, capped at ``capacity``. ``last_refill`` moves to now on any
    access with elapsed time, so partial windows are forfeited.
    """

    def __init__(
        self,
        capacity: int,
        window: int,
        store: RateLimitStateStore,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.capacity = capacity
        self.window = window
        self.store = store
        self.enabled = enabled
        self.clock = clock

    def _now(self) -> int:
        return int(self.clock())

    def _cleanup(self, data: dict, now: int) -> dict:
        """Drop stale and malformed buckets, clamping tokens into range."""
        cutoff = now - self.window * 2
        cleaned = {}
        for identifier, bucket in data.items():
            if not isinstance(bucket, dict):
                continue
            tokens = bucket.get("tokens")
            last_refill = bucket.get("last_refill")
            if not (_is_number(tokens) and _is_number(last_refill)):
                logger.warning(f"Discarding malformed rate limit bucket for {identifier}")
                continue
            if last_refill > cutoff:
                cleaned[identifier] = {
                    "tokens": min(float(self.capacity), max(0.0, float(tokens))),
                    "last_refill": last_refill,
                }
        return cleaned

    def _refill(self, bucket: dict, now: int) -> None:
        elapsed = now - bucket["last_refill"]
        if elapsed > 0:
            tokens_to_add = min(self.capacity, (elapsed // self.window) * self.capacity)
            bucket["tokens"] = min(self.capacity, bucket["tokens"] + tokens_to_add)
            bucket["last_refill"] = now

    def _new_bucket(self, now: int) -> dict:
        return {"tokens": float(self.capacity), "last_refill": now}

    def _reset_at(self, bucket: dict, now: int) -> int:
        if bucket["tokens"] < 1:
            elapsed = now - bucket["last_refill"]
            return now + (self.window - elapsed % self.window)
        return now

    def admit(self, identifier: str) -> Admission:
        """Consume a token and report the bucket state from the same locked cycle."""
        if not self.enabled:
            return Admission(True, self.capacity, self._now())

        with self.store.locked():
            now = self._now()
            data = self._cleanup(self.store.load(), now)
            bucket = data.setdefault(identifier, self._new_bucket(now))
            self._refill(bucket, now)

            allowed = bucket["tokens"] >= 1
            if allowed:
                bucket["tokens"] -= 1
            self.store.save(data)
            admission = Admission(allowed, max(0, int(bucket["tokens"])), self._reset_at(bucket, now))

        if not allowed:
            logger.info(f"Rate limit exceeded for {identifier}")
        return admission

    def is_allowed(self, identifier: str) -> bool:
        return self.admit(identifier).allowed

    def remaining(self, identifier: str) -> int:
        if not self.enabled:
            return self.capacity

        with self.store.locked():
            now = self._now()
            data = self._cleanup(self.store.load(), now)
            bucket = data.get(identifier)
            if bucket is None:
                return self.capacity
            self._refill(bucket, now)
            return max(0, int(bucket["tokens"]))

    def reset_time(self, identifier: str) -> int:
        """Epoch seconds at which the identifier can make its next request."""
        if not self.enabled:
            return self._now()

        with self.store.locked():
            now = self._now()
            data = self._cleanup(self.store.load(), now)
            bucket = data.get(identifier)
            if bucket is None:
                return now
            self._refill(bucket, now)
            return self._reset_at(bucket, now)

    def reset(self, identifier: Optional[str] = None) -> None:
        with self.store.locked():
            if identifier is None:
                self.store.clear()
                return
            data = self.store.load()
            data.pop(identifier, None)
            self.store.save(data)


def build_rate_limiter(config: Settings) -> TokenBucketRateLimiter:
    return TokenBucketRateLimiter(
        capacity=config.RATE_LIMIT,
        window=config.RATE_LIMIT_WINDOW,
        store=RateLimitStateStore(config.RATE_LIMIT_STATE_FILE),
        enabled=config.RATE_LIMIT_ENABLED,
    )
