"""持久化配置缓存

相当于 CMake 的 CMakeCache.txt: 每个条目包含值、类型和说明文字，
跨多次配置运行保留。

写入语义:
  - option() / define():  仅在条目不存在时写入（set-once-if-absent），
                          用户一旦选择就不会被后续运行覆盖
  - clear():              用户显式清除，下次运行重新按默认值初始化

as_cmake_args() 把非 INTERNAL 条目转成 -DNAME:TYPE=value 形式，
转发给外部工程的子构建。
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from yodadeps.core.registry import YamlRegistry
from yodadeps.core.variables import is_true, to_cmake_value

logger = logging.getLogger(__name__)

CACHE_TYPES = frozenset(("BOOL", "STRING", "PATH", "FILEPATH", "INTERNAL"))


class ConfigCache(YamlRegistry):
    """配置缓存（注入到解析器中，而非全局状态）"""

    section_key = "cache"

    def __init__(self, registry_file: str | Path) -> None:
        super().__init__(registry_file)
        self._lock = threading.Lock()

    def define(
        self, name: str, value: Any, *,
        type_: str = "STRING", doc: str = "",
    ) -> str:
        """条目不存在时写入默认值，返回当前生效的值"""
        if type_ not in CACHE_TYPES:
            raise ValueError(f"不支持的缓存类型: {type_}")
        with self._lock:
            entry = self._get_raw(name)
            if entry is None:
                entry = {"value": to_cmake_value(value), "type": type_, "doc": doc}
                self._put(name, entry)
                logger.debug("缓存初始化: %s=%s", name, entry["value"])
            return str(entry.get("value", ""))

    def option(self, name: str, doc: str, default: bool) -> bool:
        """布尔开关，首次运行按 default 初始化，之后保持不变"""
        value = self.define(name, "ON" if default else "OFF", type_="BOOL", doc=doc)
        return is_true(value)

    def get(self, name: str) -> str | None:
        entry = self._get_raw(name)
        if entry is None:
            return None
        return str(entry.get("value", ""))

    def contains(self, name: str) -> bool:
        return self._get_raw(name) is not None

    def entries(self) -> list[dict[str, Any]]:
        return self._list_raw()

    def clear(self, name: str) -> bool:
        """用户显式清除某个条目"""
        with self._lock:
            removed = self._remove(name)
        if removed:
            logger.info("缓存条目已清除: %s", name)
        return removed

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._section())
            self._section().clear()
            self._save()
        logger.info("已清除 %d 个缓存条目", count)
        return count

    def as_cmake_args(self) -> list[str]:
        """转发给子构建的缓存状态（跳过 INTERNAL 条目）"""
        args: list[str] = []
        for name, entry in self._section().items():
            type_ = entry.get("type", "STRING")
            if type_ == "INTERNAL":
                continue
            args.append(f"-D{name}:{type_}={entry.get('value', '')}")
        return args
