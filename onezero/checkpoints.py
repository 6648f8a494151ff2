"""
checkpoints.py - Versioned Map with Floor Lookup

Append-only history of (version, value) pairs per key. Used by the dividend
token to answer "what was this holder's balance as of period p" without
storing a balance for every period.

Versions must be appended in non-decreasing order per key. Appending at the
same version as the latest entry overwrites that entry, so a key has at most
one value per version.
"""

from __future__ import annotations
from bisect import bisect_right
from typing import Dict, Generic, Hashable, Iterator, List, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class VersionedMap(Generic[K, V]):
    """
    Map from key to an ordered list of (version, value) checkpoints.

    Example:
        balances = VersionedMap(default=0)
        balances.record("alice", 0, 50)
        balances.record("alice", 6, 30)
        balances.value_at("alice", 3)   # 50
        balances.value_at("alice", 6)   # 30
        balances.value_at("bob", 3)     # 0
    """

    def __init__(self, default: Optional[V] = None):
        self.default = default
        self._versions: Dict[K, List[int]] = {}
        self._values: Dict[K, List[V]] = {}

    def record(self, key: K, version: int, value: V) -> None:
        """
        Append a checkpoint for key.

        Raises:
            ValueError: If version is older than the latest checkpoint of key
        """
        versions = self._versions.setdefault(key, [])
        values = self._values.setdefault(key, [])
        if versions:
            latest = versions[-1]
            if version < latest:
                raise ValueError(
                    f"Checkpoint version {version} for {key!r} precedes latest {latest}"
                )
            if version == latest:
                values[-1] = value
                return
        versions.append(version)
        values.append(value)

    def value_at(self, key: K, version: int) -> Optional[V]:
        """
        Value of key as of version: the latest checkpoint with version <= the
        requested one, or the default if there is none.

        Uses binary search for O(log n) lookup.
        """
        versions = self._versions.get(key)
        if not versions:
            return self.default
        idx = bisect_right(versions, version)
        if idx == 0:
            return self.default
        return self._values[key][idx - 1]

    def latest(self, key: K) -> Optional[V]:
        values = self._values.get(key)
        return values[-1] if values else self.default

    def history(self, key: K) -> List[Tuple[int, V]]:
        """All checkpoints of key, oldest first."""
        return list(zip(self._versions.get(key, []), self._values.get(key, [])))

    def keys(self) -> Iterator[K]:
        return iter(self._versions)

    def __contains__(self, key: object) -> bool:
        return key in self._versions

    def __len__(self) -> int:
        return len(self._versions)

    def __repr__(self) -> str:
        total = sum(len(v) for v in self._versions.values())
        return f"VersionedMap({len(self._versions)} keys, {total} checkpoints)"
