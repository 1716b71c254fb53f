"""核心数据模型

- PackageRequest:    一次依赖解析请求（不可变）
- ResolutionResult:  解析结果（来源 + 版本）
- ExternalProject:   已注册的源码构建步骤
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any

from yodadeps.core.arguments import (
    ParsedArguments, parse_mapping, parse_tokens, require_arg,
)
from yodadeps.core.variables import VariableTable

UNKNOWN_VERSION = "unknown"

# yoda_find_package 的关键字
FIND_OPTIONS = ("NO_DEFAULT_PATH",)
FIND_ONE_VALUE = ("PACKAGE", "BUILD_VERSION", "VERSION_VAR")
FIND_MULTI_VALUE = (
    "PACKAGE_ARGS", "REQUIRED_VARS", "FORWARD_VARS", "DEPENDS", "ADDITIONAL",
)


class Provenance(str, Enum):
    """依赖来源"""
    SYSTEM = "system"
    BUILT = "built"


# =========================================================================
# 解析请求
# =========================================================================


@dataclass(frozen=True)
class PackageRequest:
    """单个依赖包的解析请求，每条依赖声明构造一次"""

    name: str
    build_version: str
    locator_args: tuple[str, ...] = ()
    required_vars: tuple[str, ...] = ()
    version_var: str | None = None
    prefer_system: bool = True
    no_default_path: bool = False
    forward_vars: tuple[str, ...] = ()   # 如 ("BINARY_DIR", "zstd_binary_dir")
    depends: tuple[str, ...] = ()
    additional: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        require_arg("PACKAGE", self.name)
        require_arg("BUILD_VERSION", self.build_version)

    @property
    def upper(self) -> str:
        return self.name.upper()

    @property
    def target(self) -> str:
        """源码构建时的目标名（统一小写）"""
        return self.name.lower()

    @property
    def option_name(self) -> str:
        """持久化的策略开关名"""
        return f"USE_SYSTEM_{self.upper}"

    def with_preference(self, prefer_system: bool) -> PackageRequest:
        return replace(self, prefer_system=prefer_system)

    @classmethod
    def from_tokens(cls, tokens: Sequence[str]) -> PackageRequest:
        """从扁平关键字列表构造:

            PackageRequest.from_tokens([
                "PACKAGE", "Zstd", "BUILD_VERSION", "1.5.2",
                "REQUIRED_VARS", "ZSTD_FOUND",
            ])
        """
        args = parse_tokens(tokens, FIND_OPTIONS, FIND_ONE_VALUE, FIND_MULTI_VALUE)
        return cls._from_parsed(args)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PackageRequest:
        """从 YAML 清单条目构造，FORWARD_VARS 可以写成字典"""
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            if str(key).upper() == "FORWARD_VARS" and isinstance(value, Mapping):
                value = [str(item) for pair in value.items() for item in pair]
            normalized[key] = value
        args = parse_mapping(normalized, FIND_OPTIONS, FIND_ONE_VALUE, FIND_MULTI_VALUE)
        return cls._from_parsed(args)

    @classmethod
    def _from_parsed(cls, args: ParsedArguments) -> PackageRequest:
        return cls(
            name=args.value("PACKAGE", ""),
            build_version=args.value("BUILD_VERSION", ""),
            locator_args=tuple(args.items("PACKAGE_ARGS")),
            required_vars=tuple(args.items("REQUIRED_VARS")),
            version_var=args.value("VERSION_VAR"),
            no_default_path=args.flag("NO_DEFAULT_PATH"),
            forward_vars=tuple(args.items("FORWARD_VARS")),
            depends=tuple(args.items("DEPENDS")),
            additional=tuple(args.items("ADDITIONAL")),
        )


# =========================================================================
# 解析结果
# =========================================================================


@dataclass
class ResolutionResult:
    """依赖解析结果"""

    name: str
    provenance: Provenance
    version: str
    satisfied_vars: list[str] = field(default_factory=list)
    missing_vars: list[str] = field(default_factory=list)
    variables: VariableTable = field(default_factory=VariableTable)
    dependencies: list[str] = field(default_factory=list)

    @property
    def use_system(self) -> bool:
        return self.provenance is Provenance.SYSTEM

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "provenance": self.provenance.value,
            "version": self.version,
            "satisfied_vars": list(self.satisfied_vars),
            "dependencies": list(self.dependencies),
        }


# =========================================================================
# 外部工程（源码构建步骤）
# =========================================================================


@dataclass
class ExternalProject:
    """已注册的外部工程构建步骤"""

    name: str
    target: str
    version: str
    install_dir: str
    source_dir: str
    binary_dir: str
    git_repository: str = ""
    git_tag: str = ""
    url: str = ""
    url_md5: str = ""
    source_subdir: str = ""
    cmake_args: list[str] = field(default_factory=list)
    build_always: bool = False

    @property
    def configure_source(self) -> str:
        if self.source_subdir:
            return f"{self.source_dir}/{self.source_subdir}"
        return self.source_dir

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
