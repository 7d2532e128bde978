from typing import Any, Callable, Optional

from supabase import Client, create_client

from tracker.core.config import SupabaseConfig

_supabase_config = SupabaseConfig.from_env()

url: str = _supabase_config.url
key: str = _supabase_config.anon_key
service_role_key: str = _supabase_config.service_role_key


class _LazySupabaseClient:
    """
    延迟初始化 Supabase Client，避免在 import 时因为缺少环境变量导致整个包导入失败。

    中文注释:
    - 单元测试直接注入 MagicMock，不会触发真实连接；
    - 真实运行时缺少 URL/KEY，在第一次访问 client 时抛出清晰错误。
    """

    def __init__(self, factory: Callable[[], Client]):
        self._factory = factory
        self._client: Optional[Client] = None

    def _get(self) -> Client:
        if self._client is None:
            self._client = self._factory()
        return self._client

    def reset(self) -> None:
        self._client = None

    def __getattr__(self, item: str) -> Any:
        return getattr(self._get(), item)


def _require_supabase_url() -> str:
    if not url:
        raise RuntimeError("SUPABASE_URL is required")
    return url


def _create_supabase_admin() -> Client:
    admin_key = service_role_key or key
    if not admin_key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY / SUPABASE_KEY) is required")
    return create_client(_require_supabase_url(), admin_key)


# === 服务端 Supabase 客户端（service role，延迟初始化） ===
supabase_admin: Client = _LazySupabaseClient(_create_supabase_admin)  # type: ignore[assignment]
