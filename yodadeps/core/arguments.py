"""关键字参数解析

请求构造参数沿用 yoda_find_package 的关键字风格，分三类:

  - options:           开关，出现即为 True（如 NO_DEFAULT_PATH）
  - one_value_args:    单值（如 PACKAGE、BUILD_VERSION）
  - multi_value_args:  多值，直到下一个关键字为止（如 REQUIRED_VARS）

两种输入形式:
  - parse_tokens():   扁平 token 列表 ["PACKAGE", "Zstd", "REQUIRED_VARS", "A", "B"]
  - parse_mapping():  YAML 清单中的字典 {"package": "Zstd", "required_vars": [...]}

无法识别或重复的关键字立即抛 ArgumentError。
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from yodadeps.core.exceptions import ArgumentError, MissingArgumentError


@dataclass
class ParsedArguments:
    """解析结果，键统一为大写关键字"""

    options: dict[str, bool] = field(default_factory=dict)
    values: dict[str, str] = field(default_factory=dict)
    lists: dict[str, list[str]] = field(default_factory=dict)

    def flag(self, key: str) -> bool:
        return self.options.get(key, False)

    def value(self, key: str, default: str | None = None) -> str | None:
        return self.values.get(key, default)

    def items(self, key: str) -> list[str]:
        return list(self.lists.get(key, []))


def _keywords(
    options: Iterable[str], one_value: Iterable[str], multi_value: Iterable[str],
) -> tuple[set[str], set[str], set[str]]:
    return set(options), set(one_value), set(multi_value)


def parse_tokens(
    tokens: Sequence[str],
    options: Iterable[str] = (),
    one_value: Iterable[str] = (),
    multi_value: Iterable[str] = (),
) -> ParsedArguments:
    """解析扁平 token 列表（cmake_parse_arguments 语义，另外拒绝重复关键字）"""
    opts, singles, multis = _keywords(options, one_value, multi_value)
    keywords = opts | singles | multis
    result = ParsedArguments()
    seen: set[str] = set()
    unparsed: list[str] = []
    current: str | None = None

    for token in tokens:
        if token in keywords:
            if token in seen:
                raise ArgumentError(f"重复的参数: {token}")
            seen.add(token)
            current = None
            if token in opts:
                result.options[token] = True
            elif token in singles:
                current = token
            else:
                result.lists[token] = []
                current = token
            continue

        if current is None:
            unparsed.append(token)
        elif current in singles:
            if current in result.values:
                unparsed.append(token)
            else:
                result.values[current] = token
        else:
            result.lists[current].append(token)

    if unparsed:
        raise ArgumentError(f"无效参数: {' '.join(unparsed)}")
    return result


def _as_list(key: str, raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(v) for v in raw]
    if isinstance(raw, (str, int, float)):
        return [str(raw)]
    raise ArgumentError(f"参数 {key} 需要列表，实际为 {type(raw).__name__}")


def parse_mapping(
    data: Mapping[str, Any],
    options: Iterable[str] = (),
    one_value: Iterable[str] = (),
    multi_value: Iterable[str] = (),
) -> ParsedArguments:
    """解析字典形式的参数，键大小写不敏感（package 与 PACKAGE 同义）"""
    opts, singles, multis = _keywords(options, one_value, multi_value)
    result = ParsedArguments()
    seen: set[str] = set()

    for raw_key, raw in data.items():
        key = str(raw_key).upper()
        if key in seen:
            raise ArgumentError(f"重复的参数: {raw_key}")
        seen.add(key)

        if key in opts:
            if not isinstance(raw, bool):
                raise ArgumentError(f"参数 {raw_key} 是开关，需要 true/false")
            result.options[key] = raw
        elif key in singles:
            if isinstance(raw, (list, tuple, dict)):
                raise ArgumentError(f"参数 {raw_key} 只接受单个值")
            if raw is not None:
                result.values[key] = str(raw)
        elif key in multis:
            result.lists[key] = _as_list(raw_key, raw)
        else:
            raise ArgumentError(f"无效参数: {raw_key}")
    return result


def require_arg(name: str, value: Any) -> None:
    """必填参数缺失（None 或空字符串）时抛 MissingArgumentError"""
    if value is None or value == "":
        raise MissingArgumentError(name)


def require_only_one_of(groups: Mapping[str, Sequence[Any]]) -> str:
    """多组参数中必须且只能提供一组，返回被提供的组名"""
    provided = [name for name, values in groups.items() if any(values)]
    if len(provided) != 1:
        names = " / ".join(groups)
        if not provided:
            raise ArgumentError(f"必须提供以下参数组之一: {names}")
        raise ArgumentError(
            f"参数组互斥，只能提供其一: {names} (实际提供: {', '.join(provided)})"
        )
    return provided[0]
