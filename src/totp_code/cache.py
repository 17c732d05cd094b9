"""
In-memory record of TOTP codes that have already been used.

Entries are keyed by an identity key chosen by the host (usually the user
name) and kept in expiry order, so each call only has to look at the
oldest entries to evict the ones that can no longer be replayed.

All timestamps are on the TOTP time scale: seconds since ``t0`` after the
clock offset is applied. With ``t0 = 0`` that is plain Unix time.
"""
import logging
import threading
from collections import OrderedDict
from typing import List, Optional, Union

from .exceptions import IdentityKeyError, TimeDomainError

log = logging.getLogger(__name__)

IdentityKey = Union[str, bytes, bytearray, memoryview]


class CacheEntry(object):
    __slots__ = ("key", "expires")

    def __init__(self, key: bytes, expires: int) -> None:
        self.key = key
        self.expires = expires

    def __repr__(self) -> str:
        return "CacheEntry(key={!r}, expires={})".format(self.key, self.expires)


class ReplayCache(object):
    """
    Thread-safe cache of used codes, one live entry per identity key.

    The ordered mapping serves as both indices: hashing gives the lookup by
    identity key and insertion order is the expiry order, because every
    insert or refresh moves the entry to the newest end.
    """

    def __init__(self, retain_steps: int = 1) -> None:
        """
        :param retain_steps: number of time steps a used code stays
            blocked, counted from the step before the one it was used in
        """
        if retain_steps < 1:
            raise ValueError("retain_steps must be at least 1")
        self.retain_steps = retain_steps
        self._lock = threading.Lock()
        self._entries: "OrderedDict[bytes, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity_key: IdentityKey) -> bool:
        key = _normalize_key(identity_key)
        with self._lock:
            return key in self._entries

    def keys(self) -> List[bytes]:
        """
        Identity keys currently held, shorter keys first on a common prefix.
        """
        with self._lock:
            return sorted(self._entries)

    def expiry_order(self) -> List[bytes]:
        """
        Identity keys in eviction order, oldest first.
        """
        with self._lock:
            return list(self._entries)

    def expiry_for(self, identity_key: IdentityKey) -> Optional[int]:
        key = _normalize_key(identity_key)
        with self._lock:
            entry = self._entries.get(key)
            return None if entry is None else entry.expires

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def expiry(self, step: int, interval: int) -> int:
        """
        Last second at which a code used in ``step`` still counts as used.
        """
        _check_step(step, interval)
        return (step - 1) * interval + interval - 1 + (self.retain_steps - 1) * interval

    @staticmethod
    def cutoff(step: int, interval: int) -> int:
        """
        Entries expiring before this second are stale for a call in ``step``.
        """
        _check_step(step, interval)
        return (step - 1) * interval

    def purge(self, cutoff: int) -> int:
        """
        Removes entries that expired before ``cutoff``.

        :returns: number of entries removed
        """
        with self._lock:
            return self._purge(cutoff)

    def record(self, identity_key: IdentityKey, step: int, interval: int) -> int:
        """
        Marks a code as used by ``identity_key`` in time step ``step``.

        Stale entries are evicted first. An existing entry for the same key
        is superseded: its expiry is replaced and it becomes the newest.

        :returns: the expiry stored for the key
        """
        key = _normalize_key(identity_key)
        expires = self.expiry(step, interval)
        cutoff = self.cutoff(step, interval)
        with self._lock:
            self._purge(cutoff)
            self._store(key, expires)
        return expires

    def is_replay(self, identity_key: IdentityKey, elapsed: int, interval: int) -> bool:
        """
        Checks whether ``identity_key`` already used a code that is still
        valid. The cache is not modified.

        :param elapsed: seconds on the TOTP time scale, ``now + offset - t0``
            (see :attr:`TotpParameters.elapsed`); plain Unix time only when
            ``t0`` and the offset are zero
        :param interval: time step in seconds
        """
        key = _normalize_key(identity_key)
        _check_step(0, interval)
        cutoff = self.cutoff(elapsed // interval, interval)
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.expires >= cutoff

    def check_and_record_use(self, identity_key: IdentityKey, step: int, interval: int) -> bool:
        """
        Records a use of a code unless it would be a replay.

        Eviction, the replay check and the insert happen under one lock,
        so concurrent calls for the same key allow at most one use per
        validity window.

        :param identity_key: who is using the code, e.g. a user name
        :param step: time-step index the code was computed for
        :param interval: time step in seconds
        :returns: True if the use is allowed and now recorded, False if the
            key already used a code inside the window
        """
        key = _normalize_key(identity_key)
        expires = self.expiry(step, interval)
        cutoff = self.cutoff(step, interval)
        with self._lock:
            self._purge(cutoff)
            entry = self._entries.get(key)
            if entry is not None and entry.expires >= cutoff:
                log.debug("rejecting reuse for key %r in step %d (blocked until %d)", key, step, entry.expires)
                return False
            self._store(key, expires)
        return True

    def _purge(self, cutoff: int) -> int:
        removed = 0
        while self._entries:
            entry = next(iter(self._entries.values()))
            if entry.expires >= cutoff:
                break
            del self._entries[entry.key]
            removed += 1
        if removed:
            log.debug("evicted %d replay cache entries older than %d", removed, cutoff)
        return removed

    def _store(self, key: bytes, expires: int) -> None:
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = CacheEntry(key, expires)
            return
        entry.expires = expires
        self._entries.move_to_end(key)


def _normalize_key(identity_key: IdentityKey) -> bytes:
    if isinstance(identity_key, str):
        key = identity_key.encode("utf-8")
    else:
        key = bytes(identity_key)
    if not key:
        raise IdentityKeyError("identity key must not be empty")
    return key


def _check_step(step: int, interval: int) -> None:
    if interval <= 0:
        raise TimeDomainError("time step must be a positive number of seconds")
    if step < 0:
        raise TimeDomainError("time-step index must not be negative")
