"""网络工具：外部工程源码包下载"""

from __future__ import annotations

import hashlib
import logging
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import urlparse

from yodadeps.core.exceptions import ArgumentError, ExecutionError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """只允许 http/https，防止 file:// 等非预期协议

    Raises:
        ArgumentError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ArgumentError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def file_md5(path: Path) -> str:
    md5 = hashlib.md5()  # noqa: S324
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            md5.update(chunk)
    return md5.hexdigest()


def download(url: str, dest: Path, *, md5: str = "") -> Path:
    """下载到 dest，已存在且校验通过时直接返回"""
    if dest.exists() and (not md5 or file_md5(dest) == md5):
        logger.info("  缓存命中: %s", dest)
        return dest

    validate_url_scheme(url, context=dest.name)
    dest.parent.mkdir(parents=True, exist_ok=True)
    logger.info("  下载: %s", url)
    try:
        urllib.request.urlretrieve(url, str(dest))  # nosec B310
    except (urllib.error.HTTPError, urllib.error.URLError, OSError) as e:
        dest.unlink(missing_ok=True)
        raise ExecutionError(f"下载失败: {url} - {e}") from e

    if md5:
        actual = file_md5(dest)
        if actual != md5:
            dest.unlink(missing_ok=True)
            raise ExecutionError(f"MD5 不匹配 {dest.name}: 期望 {md5}, 实际 {actual}")
        logger.info("  校验和通过: %s", dest.name)
    return dest
