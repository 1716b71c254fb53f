"""依赖解析器：系统优先 + 源码构建回退

对每个依赖包请求决定其来源（系统 / 源码构建）以及报告的版本号。

流程:
  1. 有效偏好 = 请求偏好 and not no_system_libs
     （全局开关可强制所有依赖源码构建，单个请求无法反向覆盖）
  2. 偏好系统时调用 locate() 查找，并做确认检查:
       - required_vars 全部已定义且不是 NOTFOUND
       - <name>_FOUND / <NAME>_FOUND 为真，或 <name>_DIR 非空，至少一个成立
  3. 确认通过 → System，按优先级解析版本号（见 detect_version）
  4. 否则 → Built: 版本取 build_version，注册源码构建，
     构建注册后 required_vars 仍有缺失则抛 MissingVariablesError
  5. Built 且声明了 depends: 为实际源码构建的依赖添加先后顺序

确认失败不是错误，只记录诊断信息并回退到源码构建。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from yodadeps.core.cache import ConfigCache
from yodadeps.core.exceptions import MissingVariablesError
from yodadeps.core.graph import BuildGraph
from yodadeps.core.locator import LocateEnvironment
from yodadeps.core.models import (
    UNKNOWN_VERSION,
    PackageRequest,
    Provenance,
    ResolutionResult,
)
from yodadeps.core.provisioner import ForwardedArgs, Provisioner
from yodadeps.core.variables import VariableTable

logger = logging.getLogger(__name__)


def check_required(
    variables: VariableTable, required_vars: Sequence[str],
) -> tuple[list[str], list[str]]:
    """返回 (已确认, 缺失) 两个列表"""
    satisfied: list[str] = []
    missing: list[str] = []
    for name in required_vars:
        if variables.lookup(name) is None:
            missing.append(name)
        else:
            satisfied.append(name)
    return satisfied, missing


def has_found_signal(variables: VariableTable, name: str) -> bool:
    return (
        variables.is_true(f"{name}_FOUND")
        or variables.is_true(f"{name.upper()}_FOUND")
        or bool(variables.lookup(f"{name}_DIR"))
    )


def detect_version(
    variables: VariableTable, name: str, version_var: str | None = None,
) -> str:
    """按优先级探测已找到包的版本号:

      1. version_var 指定的变量
      2. <name>_VERSION_MAJOR / _MINOR / _PATCH
      3. <name>_MAJOR_VERSION / _MINOR_VERSION / _SUBMINOR_VERSION (Boost 风格)
      4. <name>_VERSION
      5. <NAME>_VERSION
      6. "unknown"
    """
    if version_var and variables.defined(version_var):
        return variables[version_var]

    for parts in (
        ("VERSION_MAJOR", "VERSION_MINOR", "VERSION_PATCH"),
        ("MAJOR_VERSION", "MINOR_VERSION", "SUBMINOR_VERSION"),
    ):
        keys = [f"{name}_{p}" for p in parts]
        if all(variables.defined(k) for k in keys):
            return ".".join(variables[k] for k in keys)

    for key in (f"{name}_VERSION", f"{name.upper()}_VERSION"):
        if variables.defined(key):
            return variables[key]
    return UNKNOWN_VERSION


class DependencyResolver:
    """依赖解析器

    cache 为注入的配置缓存；graph 记录源码构建目标，供 depends 建立先后顺序。
    """

    def __init__(
        self,
        locator: LocateEnvironment,
        provisioner: Provisioner,
        graph: BuildGraph,
        *,
        cache: ConfigCache | None = None,
        no_system_libs: bool = False,
    ) -> None:
        self.locator = locator
        self.provisioner = provisioner
        self.graph = graph
        self.cache = cache
        self.no_system_libs = no_system_libs

    # ------------------------------------------------------------------
    # 策略开关
    # ------------------------------------------------------------------

    def preference(self, request: PackageRequest) -> bool:
        """读取 USE_SYSTEM_<NAME>，首次运行按全局开关初始化"""
        if self.cache is None:
            return request.prefer_system
        return self.cache.option(
            request.option_name,
            f"Should we use the system {request.name}?",
            not self.no_system_libs,
        )

    def apply_policy(self, request: PackageRequest) -> PackageRequest:
        return request.with_preference(self.preference(request))

    # ------------------------------------------------------------------
    # 解析
    # ------------------------------------------------------------------

    def resolve(self, request: PackageRequest) -> ResolutionResult:
        prefer_system = request.prefer_system and not self.no_system_libs
        if not prefer_system:
            logger.info("依赖包 %s: 按策略使用源码构建", request.name)
            return self._build(request)

        variables = self.locator.locate(
            request.name, request.locator_args, request.no_default_path,
        )
        satisfied, missing = check_required(variables, request.required_vars)
        if not has_found_signal(variables, request.name):
            missing.append(f"{request.name}_FOUND")

        if missing:
            details = " ".join(
                f"{m}={variables[m]}" if variables.defined(m) else m for m in missing
            )
            logger.info("Package %s not found due to missing: %s", request.name, details)
            return self._build(request, missing)

        version = detect_version(variables, request.name, request.version_var)
        logger.info("依赖包 %s: 使用系统版本 %s", request.name, version)
        return ResolutionResult(
            name=request.name,
            provenance=Provenance.SYSTEM,
            version=version,
            satisfied_vars=satisfied,
            variables=variables,
        )

    def _build(
        self, request: PackageRequest, unconfirmed: list[str] | None = None,
    ) -> ResolutionResult:
        """unconfirmed 为系统包确认失败时缺失的变量，记录在结果中便于诊断"""
        forwarded = ForwardedArgs(
            version=request.build_version,
            cmake_args=[
                *(self.cache.as_cmake_args() if self.cache is not None else []),
                "-DCMAKE_INSTALL_PREFIX:PATH=<INSTALL_DIR>",
                *request.additional,
            ],
            forward_vars=list(request.forward_vars),
        )
        variables = self.provisioner.provision(
            request.name, forwarded, request.required_vars,
        )

        satisfied = [v for v in request.required_vars if variables.defined(v)]
        missing = [v for v in request.required_vars if not variables.defined(v)]
        if missing:
            raise MissingVariablesError(request.name, missing)

        deps: list[str] = []
        if request.depends:
            deps = self.graph.optional_deps(request.depends)
            if deps:
                self.graph.add_dependencies(request.target, deps)
                logger.info("依赖包 %s 在 %s 之后构建", request.name, ", ".join(deps))

        logger.info("依赖包 %s: 源码构建 %s", request.name, request.build_version)
        return ResolutionResult(
            name=request.name,
            provenance=Provenance.BUILT,
            version=request.build_version,
            satisfied_vars=satisfied,
            missing_vars=list(unconfirmed or []),
            variables=variables,
            dependencies=deps,
        )
