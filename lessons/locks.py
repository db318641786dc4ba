import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

import redis
from redis.exceptions import LockError, RedisError

from .errors import LessonBusyError

logger = logging.getLogger(__name__)

LOCK_PREFIX = "lesson-video:lock"

_guard = threading.Lock()
_local_locks: Dict[str, "_LocalLock"] = {}
_clients: Dict[str, "redis.Redis"] = {}


def lock_name(lesson_id) -> str:
    return f"{LOCK_PREFIX}:{lesson_id}"


class _LocalLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


def _checkout_local_lock(name: str) -> threading.Lock:
    with _guard:
        entry = _local_locks.get(name)
        if entry is None:
            entry = _LocalLock()
            _local_locks[name] = entry
        entry.users += 1
        return entry.lock


def _checkin_local_lock(name: str) -> None:
    # entries live only while someone holds or waits on them
    with _guard:
        entry = _local_locks[name]
        entry.users -= 1
        if entry.users == 0:
            del _local_locks[name]


def _get_client(url: str) -> "redis.Redis":
    with _guard:
        client = _clients.get(url)
        if client is None:
            client = redis.Redis.from_url(url)
            _clients[url] = client
        return client


@contextmanager
def lesson_lock(
    lesson_id,
    *,
    redis_url: str = "",
    timeout: int = 60 * 35,
    blocking_timeout: Optional[int] = 60,
) -> Iterator[None]:
    """
    Hold an exclusive per-lesson lease for the duration of an attempt.

    With ``redis_url`` the lease is a Redis lock that expires after ``timeout``
    seconds, so a crashed worker cannot wedge the lesson. Without it the lock
    only serializes attempts inside this process.
    """
    name = lock_name(lesson_id)

    if not redis_url:
        local_lock = _checkout_local_lock(name)
        wait = -1 if blocking_timeout is None else blocking_timeout
        try:
            if not local_lock.acquire(timeout=wait):
                raise LessonBusyError(f"Lesson {lesson_id} is locked by another attempt")
            try:
                yield
            finally:
                local_lock.release()
        finally:
            _checkin_local_lock(name)
        return

    redis_lock = _get_client(redis_url).lock(
        name,
        timeout=timeout,
        blocking_timeout=blocking_timeout,
    )
    try:
        acquired = redis_lock.acquire(blocking=True)
    except RedisError as exc:
        raise LessonBusyError(f"Unable to acquire Redis lock '{name}': {exc}") from exc
    if not acquired:
        raise LessonBusyError(f"Lesson {lesson_id} is locked by another attempt")
    try:
        yield
    finally:
        try:
            redis_lock.release()
        except LockError:
            logger.warning("Lock %s expired before release", name)
        except RedisError as exc:
            logger.warning("Failed to release Redis lock %s: %s", name, exc)
