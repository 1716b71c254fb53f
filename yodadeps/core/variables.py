"""变量表：查找 / 构建步骤产出的变量

查找和源码构建步骤都以 {变量名: 值} 的形式返回结果。VariableTable 在此之上
提供类型化的查询:

  - defined(name):  变量是否被定义（值可以是 NOTFOUND）
  - lookup(name):   变量存在且不是 NOTFOUND 时返回值，否则返回 None
  - is_true(name):  按 CMake if() 的真值规则判断

NOTFOUND 约定与 CMake 相同: 值等于 NOTFOUND 或以 -NOTFOUND 结尾
（如 "ZSTD_FOUND-NOTFOUND"）。
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

NOTFOUND = "NOTFOUND"

_FALSE_CONSTANTS = frozenset(("", "0", "OFF", "NO", "FALSE", "N", "IGNORE", NOTFOUND))


def is_notfound(value: str) -> bool:
    """值中包含 NOTFOUND（大小写敏感）即视为未找到"""
    return NOTFOUND in value


def is_true(value: str | None) -> bool:
    """CMake 真值规则: 1/ON/YES/TRUE/Y/非零数字为真，假常量和 *-NOTFOUND 为假"""
    if value is None:
        return False
    v = value.strip().upper()
    if v in _FALSE_CONSTANTS or v.endswith("-" + NOTFOUND):
        return False
    try:
        return float(v) != 0
    except ValueError:
        return True


def to_cmake_value(value: Any) -> str:
    """YAML 解析出的 bool/int 等统一转成 CMake 风格字符串"""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ";".join(to_cmake_value(v) for v in value)
    return str(value)


class VariableTable(Mapping[str, str]):
    """只读变量表（按变量名大小写敏感）"""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, str] = {
            str(k): to_cmake_value(v) for k, v in (values or {}).items()
        }

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableTable({self._values!r})"

    def defined(self, name: str) -> bool:
        return name in self._values

    def lookup(self, name: str) -> str | None:
        value = self._values.get(name)
        if value is None or is_notfound(value):
            return None
        return value

    def is_true(self, name: str) -> bool:
        return is_true(self._values.get(name))

    def to_dict(self) -> dict[str, str]:
        return dict(self._values)
