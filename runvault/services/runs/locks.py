import threading
from contextlib import contextmanager
from typing import Dict, Tuple


# Per-user mutexes (runtime-only). Entries are reference counted so the
# table does not grow with every user who ever saved.
_guard = threading.Lock()
_user_locks: Dict[str, Tuple[threading.Lock, int]] = {}


@contextmanager
def user_lock(user_id: str):
    """Serialize run mutations for one user inside this process.

    Cross-process races are caught by the partial unique index on
    ``game_saves(user_id) WHERE is_active``.
    """
    with _guard:
        lock, holders = _user_locks.get(user_id, (None, 0))
        if lock is None:
            lock = threading.Lock()
        _user_locks[user_id] = (lock, holders + 1)
    lock.acquire()
    try:
        yield
    finally:
        lock.release()
        with _guard:
            lock, holders = _user_locks[user_id]
            if holders <= 1:
                del _user_locks[user_id]
            else:
                _user_locks[user_id] = (lock, holders - 1)


def active_lock_count() -> int:
    with _guard:
        return len(_user_locks)
