"""依赖解析服务：组装配置、缓存、查找环境、注册器和构建图

一次配置运行对应一个 DependencyService 实例:

    svc = DependencyService(config)
    results = svc.resolve_all()        # 按清单顺序解析全部依赖
    svc.write_package_info(results)    # 写出解析汇总
    BuildRunner(...).run(svc.graph)    # 可选: 执行已注册的源码构建
"""

from __future__ import annotations

import logging
from pathlib import Path

from yodadeps.core.cache import ConfigCache
from yodadeps.core.config import Config, get_config
from yodadeps.core.exceptions import ConfigError
from yodadeps.core.graph import BuildGraph
from yodadeps.core.locator import CMakeLocator, LocateEnvironment, StaticLocator
from yodadeps.core.manifest import Manifest
from yodadeps.core.models import PackageRequest, ResolutionResult
from yodadeps.core.provisioner import ExternalProjectProvisioner, Provisioner
from yodadeps.core.resolver import DependencyResolver
from yodadeps.utils.shell import CommandExecutor
from yodadeps.utils.yaml_io import save_yaml

logger = logging.getLogger(__name__)

PACKAGE_INFO_FILE = "yoda-packages.yml"


class DependencyService:
    """依赖解析生命周期管理"""

    def __init__(
        self,
        config: Config | None = None,
        *,
        locator: LocateEnvironment | None = None,
        provisioner: Provisioner | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config or get_config()
        self.build_dir = Path(self.config.build_dir)
        self.manifest = Manifest(self.config.manifest)
        self.cache = ConfigCache(self.config.cache_file)
        self.graph = BuildGraph()
        self.locator = locator or self._make_locator(executor)
        self.provisioner = provisioner or ExternalProjectProvisioner(
            self.manifest.externals,
            self.graph,
            self.build_dir,
            install_prefix=self.config.install_prefix,
            yoda_root=self.config.yoda_root,
        )
        self.resolver = DependencyResolver(
            self.locator,
            self.provisioner,
            self.graph,
            cache=self.cache,
            no_system_libs=self.config.no_system_libs,
        )

    def _make_locator(self, executor: CommandExecutor | None) -> LocateEnvironment:
        kind = self.config.locator
        if kind == "static":
            return StaticLocator.from_file(self.config.locate_vars_file)
        if kind == "cmake":
            return CMakeLocator(
                self.build_dir / "_locate",
                cmake=self.config.cmake,
                generator=self.config.generator,
                prefix_path=self.config.install_prefix,
                executor=executor,
            )
        raise ConfigError(f"不支持的 locator 类型: {kind} (可选: cmake, static)")

    # ------------------------------------------------------------------

    def requests(self) -> list[PackageRequest]:
        return self.manifest.load_requests()

    def resolve(self, request: PackageRequest) -> ResolutionResult:
        return self.resolver.resolve(self.resolver.apply_policy(request))

    def resolve_all(self, names: list[str] | None = None) -> list[ResolutionResult]:
        """按清单顺序解析；names 非空时只解析指定的包"""
        requests = self.requests()
        if names:
            known = {r.name for r in requests}
            unknown = [n for n in names if n not in known]
            if unknown:
                raise ConfigError(f"清单中没有这些依赖包: {', '.join(unknown)}")
            requests = [r for r in requests if r.name in names]
        return [self.resolve(r) for r in requests]

    def write_package_info(self, results: list[ResolutionResult]) -> Path:
        """写出解析汇总（名称 / 来源 / 版本 / 构建依赖）"""
        path = self.build_dir / PACKAGE_INFO_FILE
        save_yaml(path, {"packages": [r.to_dict() for r in results]})
        logger.info("解析汇总已写入: %s", path)
        return path
