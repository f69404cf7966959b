"""网络工具：URL 安全校验"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlparse

from packyard.core.exceptions import InvalidOption

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def validate_url_scheme(
    url: str, *, context: str = "", schemes: Iterable[str] = _ALLOWED_SCHEMES,
) -> None:
    """校验 URL 协议在白名单内，防止非预期协议访问

    Raises:
        InvalidOption: URL scheme 不在白名单内
    """
    allowed = frozenset(schemes)
    parsed = urlparse(url)
    if parsed.scheme not in allowed:
        label = f" ({context})" if context else ""
        raise InvalidOption(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 {'/'.join(sorted(allowed))}: {url}"
        )
