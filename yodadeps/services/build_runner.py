"""外部工程构建执行

按 BuildGraph.order() 的拓扑顺序依次构建已注册的外部工程:

  获取源码 (git clone / url 下载解压 / 已有 source_dir)
    → cmake 配置 → cmake --build → cmake --install

缓存策略:
  - 安装完成后在 binary_dir 写入 .yoda-built 标记（内容为版本号）
  - 标记存在且版本一致时跳过，build_always=True 或 force=True 时总是重新构建
  - 任一工程失败即停止，后续工程可能依赖它
"""

from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path

from yodadeps.core.exceptions import ExecutionError
from yodadeps.core.graph import BuildGraph
from yodadeps.core.models import ExternalProject
from yodadeps.utils.net import download
from yodadeps.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)

BUILT_MARKER = ".yoda-built"


@dataclass
class BuildResult:
    """单个外部工程的构建结果"""

    name: str
    status: str  # "success", "cached", "failed"
    duration: float = 0.0
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status in ("success", "cached")


class BuildRunner:
    """外部工程构建执行器"""

    def __init__(
        self,
        *,
        cmake: str = "cmake",
        generator: str = "",
        executor: CommandExecutor | None = None,
    ) -> None:
        self.cmake = cmake
        self.generator = generator
        self._executor = executor

    def run(self, graph: BuildGraph, *, force: bool = False) -> list[BuildResult]:
        results: list[BuildResult] = []
        for project in graph.order():
            result = self.build(project, force=force)
            results.append(result)
            if not result.ok:
                logger.error("构建中止: %s 失败", project.name)
                break
        return results

    # ------------------------------------------------------------------
    # 单个工程
    # ------------------------------------------------------------------

    def is_cached(self, project: ExternalProject) -> bool:
        marker = Path(project.binary_dir) / BUILT_MARKER
        if project.build_always or not marker.exists():
            return False
        return marker.read_text(encoding="utf-8").strip() == project.version

    def build(self, project: ExternalProject, *, force: bool = False) -> BuildResult:
        if not force and self.is_cached(project):
            logger.info("构建缓存命中: %s@%s", project.name, project.version)
            return BuildResult(name=project.name, status="cached", message="缓存命中")

        start = time.monotonic()
        try:
            self.fetch_sources(project)
            self._cmake(self.configure_cmd(project), project, "configure")
            self._cmake([self.cmake, "--build", project.binary_dir], project, "build")
            self._cmake([self.cmake, "--install", project.binary_dir], project, "install")
        except (ExecutionError, OSError) as e:
            duration = time.monotonic() - start
            logger.error("构建失败 %s: %s", project.name, e)
            return BuildResult(
                name=project.name, status="failed", duration=duration, message=str(e),
            )

        (Path(project.binary_dir) / BUILT_MARKER).write_text(project.version, encoding="utf-8")
        duration = time.monotonic() - start
        logger.info("构建完成: %s@%s (%.1fs)", project.name, project.version, duration)
        return BuildResult(name=project.name, status="success", duration=duration)

    def configure_cmd(self, project: ExternalProject) -> list[str]:
        cmd = [self.cmake, "-S", project.configure_source, "-B", project.binary_dir]
        if self.generator:
            cmd += ["-G", self.generator]
        return [*cmd, *project.cmake_args]

    def _cmake(self, cmd: list[str], project: ExternalProject, label: str) -> None:
        Path(project.binary_dir).mkdir(parents=True, exist_ok=True)
        run_cmd(
            cmd, cwd=project.binary_dir,
            label=f"{project.target} {label}", executor=self._executor,
        )

    # ------------------------------------------------------------------
    # 源码获取
    # ------------------------------------------------------------------

    def fetch_sources(self, project: ExternalProject) -> None:
        source = Path(project.source_dir)
        if project.git_repository:
            self._clone(project, source)
        elif project.url:
            self._download_and_extract(project, source)
        elif not source.is_dir():
            raise ExecutionError(f"源码目录不存在: {source}")

    def _clone(self, project: ExternalProject, source: Path) -> None:
        if not (source / ".git").exists():
            source.parent.mkdir(parents=True, exist_ok=True)
            run_cmd(
                ["git", "clone", project.git_repository, str(source)],
                cwd=str(source.parent), label=f"{project.target} clone",
                executor=self._executor,
            )
        if project.git_tag:
            run_cmd(
                ["git", "checkout", project.git_tag],
                cwd=str(source), label=f"{project.target} checkout",
                executor=self._executor,
            )

    def _download_and_extract(self, project: ExternalProject, source: Path) -> None:
        if source.is_dir() and any(source.iterdir()):
            return
        filename = project.url.rstrip("/").split("/")[-1] or f"{project.target}.tar.gz"
        archive = download(
            project.url,
            Path(project.binary_dir).parent / "download" / filename,
            md5=project.url_md5,
        )
        with tempfile.TemporaryDirectory(dir=str(archive.parent)) as tmp:
            _extract(archive, Path(tmp))
            entries = list(Path(tmp).iterdir())
            # 压缩包只有一个顶层目录时以它为源码根目录
            top = entries[0] if len(entries) == 1 and entries[0].is_dir() else Path(tmp)
            source.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(top, source, dirs_exist_ok=True)
        logger.info("  已解压: %s -> %s", archive.name, source)


def _extract(archive: Path, dest: Path) -> None:
    """解压源码包；成员路径越出 dest 时抛 ExecutionError"""
    try:
        if zipfile.is_zipfile(archive):
            with zipfile.ZipFile(archive) as zf:
                root = dest.resolve()
                for member in zf.namelist():
                    if not (dest / member).resolve().is_relative_to(root):
                        raise ExecutionError(f"源码包包含非法路径: {member}")
                zf.extractall(path=str(dest))  # noqa: S202
        else:
            with tarfile.open(archive) as tf:
                tf.extractall(path=str(dest), filter="data")  # noqa: S202
    except (tarfile.TarError, zipfile.BadZipFile) as e:
        raise ExecutionError(f"解压失败 {archive.name}: {e}") from e
