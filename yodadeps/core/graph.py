"""外部工程构建图

记录已注册的外部工程目标以及它们之间的先后顺序。注册本身不执行构建，
构建由 BuildRunner 按 order() 给出的拓扑顺序执行。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from yodadeps.core.exceptions import DependencyError
from yodadeps.core.models import ExternalProject

logger = logging.getLogger(__name__)


class BuildGraph:
    """外部工程目标 + 依赖边"""

    def __init__(self) -> None:
        self._projects: dict[str, ExternalProject] = {}
        self._edges: dict[str, list[str]] = {}

    def add_project(self, project: ExternalProject) -> None:
        if project.target in self._projects:
            raise DependencyError(f"构建目标已存在: {project.target}")
        self._projects[project.target] = project
        self._edges[project.target] = []
        logger.debug("已注册构建目标: %s", project.target)

    def has_target(self, target: str) -> bool:
        return target in self._projects

    def get(self, target: str) -> ExternalProject | None:
        return self._projects.get(target)

    @property
    def projects(self) -> list[ExternalProject]:
        return list(self._projects.values())

    def dependencies_of(self, target: str) -> list[str]:
        return list(self._edges.get(target, []))

    def optional_deps(self, names: Iterable[str]) -> list[str]:
        """过滤依赖列表，只保留确实注册了构建目标的包（使用系统版本的包没有目标）"""
        deps: list[str] = []
        for name in names:
            target = name.lower()
            if target in self._projects and target not in deps:
                deps.append(target)
            else:
                logger.debug("忽略非构建依赖: %s", name)
        return deps

    def add_dependencies(self, target: str, deps: Iterable[str]) -> None:
        """target 的构建在 deps 之后执行"""
        if target not in self._projects:
            raise DependencyError(f"未知构建目标: {target}")
        edges = self._edges[target]
        for dep in deps:
            if dep not in self._projects:
                raise DependencyError(f"构建目标 {target} 依赖未知目标: {dep}")
            if dep == target:
                raise DependencyError(f"构建目标不能依赖自身: {target}")
            if dep not in edges:
                edges.append(dep)

    def order(self) -> list[ExternalProject]:
        """拓扑排序（同层按注册顺序），存在循环时抛 DependencyError"""
        result: list[ExternalProject] = []
        state: dict[str, str] = {}

        def visit(target: str, path: list[str]) -> None:
            mark = state.get(target)
            if mark == "done":
                return
            if mark == "visiting":
                cycle = " -> ".join([*path[path.index(target):], target])
                raise DependencyError(f"检测到循环依赖: {cycle}")
            state[target] = "visiting"
            for dep in self._edges[target]:
                visit(dep, [*path, target])
            state[target] = "done"
            result.append(self._projects[target])

        for target in self._projects:
            visit(target, [])
        return result
