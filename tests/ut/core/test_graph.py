"""BuildGraph 测试"""

from __future__ import annotations

import pytest

from yodadeps.core.exceptions import DependencyError
from yodadeps.core.graph import BuildGraph
from yodadeps.core.models import ExternalProject


def _project(name: str) -> ExternalProject:
    target = name.lower()
    return ExternalProject(
        name=name, target=target, version="1.0",
        install_dir=f"/i/{target}", source_dir=f"/s/{target}", binary_dir=f"/b/{target}",
    )


@pytest.fixture()
def graph() -> BuildGraph:
    g = BuildGraph()
    for name in ("Zstd", "Absl", "Protobuf", "gtclang"):
        g.add_project(_project(name))
    return g


class TestBuildGraph:
    def test_order_follows_edges(self, graph: BuildGraph) -> None:
        graph.add_dependencies("zstd", ["gtclang"])
        graph.add_dependencies("protobuf", ["zstd", "absl"])
        order = [p.target for p in graph.order()]
        assert order.index("gtclang") < order.index("zstd") < order.index("protobuf")
        assert order.index("absl") < order.index("protobuf")
        assert len(order) == 4

    def test_registration_order_without_edges(self, graph: BuildGraph) -> None:
        assert [p.target for p in graph.order()] == ["zstd", "absl", "protobuf", "gtclang"]

    def test_cycle_detected(self, graph: BuildGraph) -> None:
        graph.add_dependencies("zstd", ["absl"])
        graph.add_dependencies("absl", ["zstd"])
        with pytest.raises(DependencyError, match="循环依赖"):
            graph.order()

    @pytest.mark.parametrize(("target", "deps"), [
        ("unknown", ["zstd"]),
        ("zstd", ["unknown"]),
        ("zstd", ["zstd"]),
    ])
    def test_invalid_edges(self, graph: BuildGraph, target: str, deps: list[str]) -> None:
        with pytest.raises(DependencyError):
            graph.add_dependencies(target, deps)

    def test_duplicate_target(self, graph: BuildGraph) -> None:
        with pytest.raises(DependencyError, match="已存在"):
            graph.add_project(_project("Zstd"))

    def test_optional_deps_filters_unbuilt(self, graph: BuildGraph) -> None:
        assert graph.optional_deps(["Zstd", "Boost", "zstd", "GTClang"]) == ["zstd", "gtclang"]

    def test_edges_deduplicated(self, graph: BuildGraph) -> None:
        graph.add_dependencies("protobuf", ["zstd"])
        graph.add_dependencies("protobuf", ["zstd", "absl"])
        assert graph.dependencies_of("protobuf") == ["zstd", "absl"]
