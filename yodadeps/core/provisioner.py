"""源码构建注册器

Provisioner 协议: provision(name, forwarded, required_vars) -> VariableTable

ExternalProjectProvisioner 根据清单 externals 段中的外部工程定义注册构建目标，
并返回构建完成后可用的变量（<name>_DIR 以及 exports 中声明的变量）。

外部工程定义示例（manifest.yml）:

    externals:
      Zstd:
        git_repository: https://github.com/facebook/zstd.git
        git_tag: v1.5.2
        source_subdir: build/cmake
        cmake_args: [-DZSTD_BUILD_PROGRAMS=OFF]
        exports:
          ZSTD_DIR: "{install_dir}/lib/cmake/zstd"
          ZSTD_VERSION: "{version}"

源码来源三选一: source_dir / git_repository + git_tag / url (+ url_md5)。
cmake_args 中的 <INSTALL_DIR> <SOURCE_DIR> <BINARY_DIR> 占位符在注册时替换。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from yodadeps.core.arguments import (
    ParsedArguments, parse_mapping, parse_tokens, require_only_one_of,
)
from yodadeps.core.exceptions import ArgumentError, ConfigError
from yodadeps.core.graph import BuildGraph
from yodadeps.core.models import ExternalProject
from yodadeps.core.registry import YamlRegistry
from yodadeps.core.variables import VariableTable, to_cmake_value

logger = logging.getLogger(__name__)

EXTERNAL_OPTIONS = ("BUILD_ALWAYS",)
EXTERNAL_ONE_VALUE = (
    "URL", "URL_MD5", "SOURCE_DIR", "SOURCE_SUBDIR",
    "GIT_REPOSITORY", "GIT_TAG", "INSTALL_DIR",
)
EXTERNAL_MULTI_VALUE = ("CMAKE_ARGS",)
FORWARD_ONE_VALUE = ("BINARY_DIR",)


@dataclass
class ForwardedArgs:
    """从解析请求转发给构建步骤的参数"""

    version: str
    cmake_args: list[str] = field(default_factory=list)
    forward_vars: list[str] = field(default_factory=list)


class Provisioner(Protocol):
    """源码构建注册协议"""

    def provision(
        self, name: str, forwarded: ForwardedArgs, required_vars: Sequence[str],
    ) -> VariableTable:
        """注册构建步骤，返回构建完成后可用的变量"""
        ...


# =========================================================================
# 外部工程定义
# =========================================================================


@dataclass
class ExternalDefinition:
    """清单中某个包的外部工程定义"""

    name: str
    args: ParsedArguments
    exports: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> ExternalDefinition:
        body = dict(data)
        exports_raw = None
        for key in list(body):
            if str(key).upper() == "EXPORTS":
                exports_raw = body.pop(key)
        if exports_raw is not None and not isinstance(exports_raw, Mapping):
            raise ArgumentError(f"外部工程 {name} 的 exports 必须是字典")
        args = parse_mapping(body, EXTERNAL_OPTIONS, EXTERNAL_ONE_VALUE, EXTERNAL_MULTI_VALUE)

        source = require_only_one_of({
            "SOURCE_DIR": [args.value("SOURCE_DIR")],
            "GIT": [args.value("GIT_REPOSITORY"), args.value("GIT_TAG")],
            "URL": [args.value("URL"), args.value("URL_MD5")],
        })
        if source == "GIT" and not args.value("GIT_REPOSITORY"):
            raise ArgumentError(f"外部工程 {name} 指定了 GIT_TAG 但缺少 GIT_REPOSITORY")
        if source == "URL" and not args.value("URL"):
            raise ArgumentError(f"外部工程 {name} 指定了 URL_MD5 但缺少 URL")

        exports = {str(k): to_cmake_value(v) for k, v in (exports_raw or {}).items()}
        return cls(name=name, args=args, exports=exports)


class ExternalRegistry(YamlRegistry):
    """清单文件 externals 段"""

    section_key = "externals"

    def get(self, name: str) -> ExternalDefinition | None:
        entry = self._get_raw(name)
        if entry is None:
            return None
        return ExternalDefinition.from_mapping(name, entry)

    def names(self) -> list[str]:
        return list(self._section())


# =========================================================================
# 注册器
# =========================================================================


def _expand(template: str, dirs: Mapping[str, str]) -> str:
    for key, value in dirs.items():
        template = template.replace("{" + key + "}", value)
    return template


def _substitute(arg: str, dirs: Mapping[str, str]) -> str:
    for key, value in dirs.items():
        arg = arg.replace(f"<{key.upper()}>", value)
    return arg


class ExternalProjectProvisioner:
    """按外部工程定义注册构建目标"""

    def __init__(
        self,
        definitions: Mapping[str, ExternalDefinition] | ExternalRegistry,
        graph: BuildGraph,
        build_root: str | Path,
        *,
        install_prefix: str = "",
        yoda_root: str = "",
    ) -> None:
        self.definitions = definitions
        self.graph = graph
        self.build_root = Path(build_root)
        self.install_prefix = install_prefix
        self.yoda_root = yoda_root

    def _definition(self, name: str) -> ExternalDefinition:
        definition = self.definitions.get(name)
        if definition is None:
            raise ConfigError(f"依赖包 '{name}' 需要源码构建，但清单中没有对应的外部工程定义")
        return definition

    def provision(
        self, name: str, forwarded: ForwardedArgs, required_vars: Sequence[str],
    ) -> VariableTable:
        definition = self._definition(name)
        target = name.lower()

        project = self.graph.get(target)
        if project is None:
            project = self._register(definition, target, forwarded)
        else:
            logger.debug("构建目标已注册，复用: %s", target)

        dirs = {
            "install_dir": project.install_dir,
            "source_dir": project.source_dir,
            "binary_dir": project.binary_dir,
            "version": project.version,
        }
        values: dict[str, str] = {f"{name}_DIR": f"{project.install_dir}/cmake"}
        values.update({k: _expand(v, dirs) for k, v in definition.exports.items()})

        if forwarded.forward_vars:
            try:
                fv = parse_tokens(forwarded.forward_vars, one_value=FORWARD_ONE_VALUE)
            except ArgumentError as e:
                raise ArgumentError(f"FORWARD_VARS 参数无效: {e}") from e
            binary_var = fv.value("BINARY_DIR")
            if binary_var:
                values[binary_var] = project.binary_dir

        unresolved = [v for v in required_vars if v not in values]
        if unresolved:
            logger.debug("构建目标 %s 未导出: %s", target, ", ".join(unresolved))
        return VariableTable(values)

    def _register(
        self, definition: ExternalDefinition, target: str, forwarded: ForwardedArgs,
    ) -> ExternalProject:
        args = definition.args
        root = self.build_root / "external" / target
        source_dir = args.value("SOURCE_DIR") or str(root / "src")
        install_dir = (
            args.value("INSTALL_DIR")
            or self.install_prefix
            or str(root / "install")
        )
        binary_dir = str(root / "build")
        dirs = {
            "install_dir": install_dir,
            "source_dir": source_dir,
            "binary_dir": binary_dir,
        }

        cmake_args = [*forwarded.cmake_args, *args.items("CMAKE_ARGS")]
        if self.yoda_root:
            cmake_args.append(f"-DYODA_ROOT={self.yoda_root}")
        project = ExternalProject(
            name=definition.name,
            target=target,
            version=forwarded.version,
            install_dir=install_dir,
            source_dir=source_dir,
            binary_dir=binary_dir,
            git_repository=args.value("GIT_REPOSITORY", ""),
            git_tag=args.value("GIT_TAG", ""),
            url=args.value("URL", ""),
            url_md5=args.value("URL_MD5", ""),
            source_subdir=args.value("SOURCE_SUBDIR", ""),
            cmake_args=[_substitute(a, dirs) for a in cmake_args],
            build_always=args.flag("BUILD_ALWAYS"),
        )
        self.graph.add_project(project)
        logger.info("已注册源码构建: %s@%s -> %s", definition.name, forwarded.version, install_dir)
        return project
