from __future__ import annotations

from threading import Lock
from time import monotonic
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class ShortTTLCache(Generic[T]):
    """
    进程内短缓存，用于 dashboard 聚合统计这类高频只读数据。

    中文注释:
    - 只在当前 worker 内生效，不跨进程；
    - 状态变更后由 StatsService.invalidate_aggregate_stats() 按前缀主动清空；
    - 满额时先清理过期条目，仍超限则按插入顺序淘汰最早项。
    """

    def __init__(self, *, max_entries: int = 512, default_ttl_sec: float = 300.0) -> None:
        self._max_entries = max(32, int(max_entries or 512))
        self._default_ttl = float(default_ttl_sec or 0)
        self._store: dict[str, tuple[float, T]] = {}
        self._lock = Lock()

    def get(self, key: str) -> T | None:
        now = monotonic()
        with self._lock:
            row = self._store.get(key)
            if row is None:
                return None
            expires_at, value = row
            if expires_at <= now:
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: T, *, ttl_sec: float | None = None) -> None:
        ttl = self._default_ttl if ttl_sec is None else float(ttl_sec or 0)
        if ttl <= 0:
            return
        expires_at = monotonic() + ttl
        with self._lock:
            if key not in self._store and len(self._store) >= self._max_entries:
                self._evict_locked()
            self._store[key] = (expires_at, value)

    def get_or_set(self, key: str, loader: Callable[[], T], *, ttl_sec: float | None = None) -> T:
        """loader 抛异常时不写缓存，异常原样上抛。"""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        self.set(key, value, ttl_sec=ttl_sec)
        return value

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._store if k.startswith(prefix)]
            for k in keys:
                self._store.pop(k, None)
            return len(keys)

    def _evict_locked(self) -> None:
        now = monotonic()
        expired_keys = [k for k, (exp, _) in self._store.items() if exp <= now]
        for k in expired_keys:
            self._store.pop(k, None)
        while len(self._store) >= self._max_entries:
            try:
                oldest_key = next(iter(self._store))
            except StopIteration:
                break
            self._store.pop(oldest_key, None)
