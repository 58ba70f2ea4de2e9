"""
工厂函数：根据 payer 字符串返回对应的 Payer Adapter 实例。

payer 是前台手填的自由文本（"Blue Cross"、"BCBS of Texas"、"aetna "），
先 normalize，再查别名表得到 slug。

resolve 永远不失败：
  - 未知 payer                        → MockPayerAdapter
  - 已注册但 settings 里没配 base_url → MockPayerAdapter

新增 payer 只需：
  1. 在 adapters.py 新建 Adapter 类
  2. 在 _build_registry() 和 _PAYER_ALIASES 各加一行
  3. 在 settings.PAYER_INTEGRATIONS 配置 base_url / api_key
"""

import logging
import re

from django.conf import settings

from .base import BasePayerAdapter

logger = logging.getLogger(__name__)

# normalize 之后的 payer 名 → slug
_PAYER_ALIASES = {
    "bcbs": "bcbs",
    "blue cross": "bcbs",
    "blue cross blue shield": "bcbs",
    "bluecross blueshield": "bcbs",
    "anthem blue cross": "bcbs",
    "aetna": "aetna",
    "aetna cvs health": "aetna",
}

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def _build_registry() -> dict[str, type[BasePayerAdapter]]:
    # 延迟导入，避免循环依赖
    from .adapters import AetnaAdapter, BlueCrossBlueShieldAdapter

    return {
        "bcbs":  BlueCrossBlueShieldAdapter,
        "aetna": AetnaAdapter,
    }


def normalize_payer(payer: str | None) -> str:
    """小写、去标点、压缩空白：' Blue-Cross  ' → 'blue cross'。"""
    return _NON_ALNUM_RE.sub(" ", (payer or "").lower()).strip()


def resolve_payer_slug(payer: str | None) -> str | None:
    normalized = normalize_payer(payer)
    if normalized in _PAYER_ALIASES:
        return _PAYER_ALIASES[normalized]
    # "bcbs of texas" / "aetna better health" 之类，按前缀匹配
    for alias, slug in _PAYER_ALIASES.items():
        if normalized.startswith(alias + " "):
            return slug
    return None


def get_default_adapter() -> BasePayerAdapter:
    from .adapters import MockPayerAdapter

    return MockPayerAdapter()


def get_payer_adapter(payer: str | None) -> BasePayerAdapter:
    """
    根据 payer 返回已实例化的 Adapter。

    Args:
        payer: PA request 上存的 payer 字符串

    Returns:
        具体 payer 的 adapter；无法匹配或未配置时返回默认 adapter（永不抛异常）
    """
    slug = resolve_payer_slug(payer)
    adapter_cls = _build_registry().get(slug) if slug else None

    if adapter_cls is None:
        logger.debug("Payer %r has no dedicated adapter, using default", payer)
        return get_default_adapter()

    config = getattr(settings, "PAYER_INTEGRATIONS", {}).get(slug) or {}
    if not config.get("base_url"):
        logger.info("Payer %r resolved to %s but no endpoint is configured, using default", payer, slug)
        return get_default_adapter()

    return adapter_cls(
        base_url=config["base_url"],
        api_key=config.get("api_key", ""),
        timeout=getattr(settings, "PAYER_HTTP_TIMEOUT", 30.0),
        max_retries=getattr(settings, "PAYER_HTTP_MAX_RETRIES", 2),
    )
