import os
from dataclasses import dataclass


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_int(key: str, default: int) -> int:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class SupabaseConfig:
    """
    Supabase connection settings.

    Both keys may be empty at import time; the lazy client in
    `tracker.lib.api_client` raises a clear error on first use instead.
    """

    url: str
    service_role_key: str
    anon_key: str

    @staticmethod
    def from_env() -> "SupabaseConfig":
        url = (os.environ.get("SUPABASE_URL") or "").strip()
        service_role_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
        # SUPABASE_ANON_KEY 与 SUPABASE_KEY 在多数环境下等价，优先前者
        anon_key = (
            os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY") or ""
        ).strip()
        return SupabaseConfig(url=url, service_role_key=service_role_key, anon_key=anon_key)


@dataclass(frozen=True)
class TrackerConfig:
    """
    Application Environment Config

    中文注释:
    - 统计缓存 TTL / 推荐条数上限都必须可配置，避免硬编码。
    - 数值解析失败时回退默认值，不阻塞启动。
    """

    env: str  # 'development', 'staging', 'production'
    log_level: str
    stats_cache_ttl_sec: float
    stats_cache_max_entries: int
    suggestion_limit: int
    stats_cache_enabled: bool

    @staticmethod
    def from_env() -> "TrackerConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()
        log_level = (os.environ.get("LOG_LEVEL") or "INFO").strip().upper()

        suggestion_limit = _env_int("SUGGESTION_LIMIT", 10)
        if suggestion_limit <= 0:
            suggestion_limit = 10

        return TrackerConfig(
            env=env,
            log_level=log_level,
            stats_cache_ttl_sec=_env_float("STATS_CACHE_TTL_SEC", 300.0),
            stats_cache_max_entries=_env_int("STATS_CACHE_MAX_ENTRIES", 512),
            suggestion_limit=suggestion_limit,
            stats_cache_enabled=_env_bool("STATS_CACHE_ENABLED", True),
        )
