"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from yodadeps.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """全局配置"""

    # 策略: 为 True 时所有依赖强制源码构建
    no_system_libs: bool = False

    # 目录 / 文件
    build_dir: str = "build"
    cache_file: str = "build/yoda-cache.yml"
    manifest: str = "deps/packages.yml"
    install_prefix: str = ""
    yoda_root: str = ""

    # CMake
    cmake: str = "cmake"
    generator: str = ""

    # 系统包查找方式: "cmake" 通过 find_package 探测，"static" 读取变量表文件
    locator: str = "cmake"
    locate_vars_file: str = "deps/locate_vars.yml"

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "configs/yoda.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        from dataclasses import asdict
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/yoda.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
