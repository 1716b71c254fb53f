"""系统包查找环境

LocateEnvironment 协议: locate(name, args, no_default_path) -> VariableTable

实现:
  - StaticLocator: 直接返回预先配置的变量表（变量表文件 / 测试）
  - CMakeLocator:  生成一个只调用 find_package 的探测工程，运行 cmake 配置，
                   读回配置结束时定义的全部变量（探测工程自身的 _yoda_ 变量除外）

查找永不抛异常: 失败时返回空表或部分结果，由解析器的确认检查决定后续路径。
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

from yodadeps.core.variables import VariableTable
from yodadeps.utils.shell import CommandExecutor, format_cmd, get_executor
from yodadeps.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


class LocateEnvironment(Protocol):
    """系统包查找协议"""

    def locate(
        self, name: str, args: Sequence[str], no_default_path: bool,
    ) -> VariableTable:
        """查找系统中已安装的包，返回查找过程定义的变量"""
        ...


# =========================================================================
# 静态变量表
# =========================================================================


class StaticLocator:
    """按包名返回预置变量表，未配置的包返回空表"""

    def __init__(self, tables: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self.tables = {k: VariableTable(v) for k, v in (tables or {}).items()}

    @classmethod
    def from_file(cls, path: str | Path) -> StaticLocator:
        """变量表文件格式:

            Zstd:
              ZSTD_FOUND: "TRUE"
              ZSTD_VERSION: "1.5.0"
        """
        data = load_yaml(path)
        tables = {k: v for k, v in data.items() if isinstance(v, Mapping)}
        logger.info("已加载 %d 个包的预置变量表: %s", len(tables), path)
        return cls(tables)

    def locate(
        self, name: str, args: Sequence[str], no_default_path: bool,
    ) -> VariableTable:
        return self.tables.get(name, VariableTable())


# =========================================================================
# cmake find_package 探测
# =========================================================================

_PROBE_TEMPLATE = """\
cmake_minimum_required(VERSION 3.12)
project(yoda_locate_probe LANGUAGES C CXX)

find_package(@NAME@ @ARGS@)

get_cmake_property(_yoda_vars VARIABLES)
file(WRITE "${CMAKE_BINARY_DIR}/@OUTPUT@" "")
foreach(_yoda_var IN LISTS _yoda_vars)
  if(NOT _yoda_var MATCHES "^_yoda_")
    string(REPLACE "\\n" " " _yoda_value "${${_yoda_var}}")
    file(APPEND "${CMAKE_BINARY_DIR}/@OUTPUT@" "${_yoda_var}=${_yoda_value}\\n")
  endif()
endforeach()
"""

PROBE_OUTPUT = "locate-vars.txt"


def render_probe(name: str, args: Sequence[str], no_default_path: bool) -> str:
    """生成探测工程的 CMakeLists.txt"""
    find_args = [*args, "NO_DEFAULT_PATH", "QUIET"] if no_default_path else [*args, "QUIET"]
    return (
        _PROBE_TEMPLATE
        .replace("@NAME@", name)
        .replace("@ARGS@", " ".join(_quote(a) for a in find_args))
        .replace("@OUTPUT@", PROBE_OUTPUT)
    )


def _quote(arg: str) -> str:
    if arg and not any(c in arg for c in ' \t"();#'):
        return arg
    escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_probe_output(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in text.splitlines():
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key] = value
    return values


class CMakeLocator:
    """通过 cmake find_package 探测系统包"""

    def __init__(
        self,
        work_root: str | Path,
        *,
        cmake: str = "cmake",
        generator: str = "",
        prefix_path: str = "",
        executor: CommandExecutor | None = None,
    ) -> None:
        self.work_root = Path(work_root)
        self.cmake = cmake
        self.generator = generator
        self.prefix_path = prefix_path
        self._executor = executor

    def locate(
        self, name: str, args: Sequence[str], no_default_path: bool,
    ) -> VariableTable:
        probe_dir = self.work_root / name
        binary_dir = probe_dir / "build"
        try:
            binary_dir.mkdir(parents=True, exist_ok=True)
            (probe_dir / "CMakeLists.txt").write_text(
                render_probe(name, args, no_default_path), encoding="utf-8",
            )
        except OSError as e:
            logger.warning("无法创建探测工程 %s: %s", probe_dir, e)
            return VariableTable()

        output = binary_dir / PROBE_OUTPUT
        output.unlink(missing_ok=True)

        cmd = [self.cmake, "-S", str(probe_dir), "-B", str(binary_dir)]
        if self.generator:
            cmd += ["-G", self.generator]
        if self.prefix_path:
            cmd.append(f"-DCMAKE_PREFIX_PATH={self.prefix_path}")

        logger.debug("探测 %s: %s", name, format_cmd(cmd))
        executor = self._executor or get_executor()
        try:
            r = executor.execute(cmd, cwd=str(probe_dir))
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("cmake 探测 %s 失败: %s", name, e)
            return VariableTable()
        if not r.success:
            logger.warning(
                "cmake 探测 %s 返回 %d: %s", name, r.returncode, r.stderr[:500],
            )

        if not output.exists():
            return VariableTable()
        values = parse_probe_output(output.read_text(encoding="utf-8"))
        logger.debug("探测 %s 得到 %d 个变量", name, len(values))
        return VariableTable(values)
