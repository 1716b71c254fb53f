"""依赖清单加载

清单文件包含两个段:
  - packages:  依赖声明列表（按列表顺序解析，依赖方应排在被依赖方之后）
  - externals: 需要源码构建时使用的外部工程定义（见 provisioner.py）

    packages:
      - package: Zstd
        build_version: 1.5.2
        required_vars: [ZSTD_FOUND]
      - package: Protobuf
        build_version: 3.21.12
        package_args: [3.0, CONFIG]
        version_var: Protobuf_VERSION
        depends: [Zstd]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from yodadeps.core.exceptions import ConfigError
from yodadeps.core.models import PackageRequest
from yodadeps.core.provisioner import ExternalRegistry
from yodadeps.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


class Manifest:
    """依赖清单"""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.externals = ExternalRegistry(self.path)

    def load_requests(self) -> list[PackageRequest]:
        if not self.path.exists():
            raise ConfigError(f"依赖清单不存在: {self.path}")

        entries = load_yaml(self.path).get("packages") or []
        if not isinstance(entries, list):
            raise ConfigError(f"{self.path}: packages 段必须是列表")

        requests: list[PackageRequest] = []
        seen: set[str] = set()
        for index, entry in enumerate(entries):
            if not isinstance(entry, Mapping):
                raise ConfigError(f"{self.path}: packages[{index}] 必须是字典")
            request = PackageRequest.from_mapping(entry)
            if request.name in seen:
                raise ConfigError(f"{self.path}: 依赖包重复声明: {request.name}")
            seen.add(request.name)
            requests.append(request)

        logger.info("已加载 %d 个依赖声明: %s", len(requests), self.path)
        return requests
