"""查找环境测试：静态变量表 + cmake 探测工程"""

from __future__ import annotations

from pathlib import Path

from yodadeps.core.graph import BuildGraph
from yodadeps.core.locator import (
    PROBE_OUTPUT,
    CMakeLocator,
    StaticLocator,
    parse_probe_output,
    render_probe,
)
from yodadeps.core.models import PackageRequest, Provenance
from yodadeps.core.provisioner import ExternalProjectProvisioner
from yodadeps.core.resolver import DependencyResolver
from yodadeps.utils.shell import CommandResult
from yodadeps.utils.yaml_io import save_yaml


class FakeCMake:
    """模拟 cmake 配置: 把预置变量写入探测输出文件"""

    def __init__(self, output: str | None, returncode: int = 0) -> None:
        self.output = output
        self.returncode = returncode
        self.commands: list[list[str]] = []

    def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        self.commands.append(list(cmd))
        binary_dir = Path(cmd[cmd.index("-B") + 1])
        if self.output is not None:
            (binary_dir / PROBE_OUTPUT).write_text(self.output, encoding="utf-8")
        return CommandResult(returncode=self.returncode, stdout="", stderr="configure failed")


class MissingCMake:
    def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        raise FileNotFoundError("cmake")


class TestStaticLocator:
    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "locate_vars.yml"
        save_yaml(path, {
            "Zstd": {"ZSTD_FOUND": True, "ZSTD_VERSION": "1.5.0"},
            "broken": "not a mapping",
        })
        locator = StaticLocator.from_file(path)
        table = locator.locate("Zstd", [], False)
        assert table["ZSTD_FOUND"] == "TRUE"
        assert table["ZSTD_VERSION"] == "1.5.0"
        assert len(locator.locate("Absl", [], False)) == 0
        assert "broken" not in locator.tables


class TestProbeProject:
    def test_render_default_path(self) -> None:
        text = render_probe("Protobuf", ["3.0", "CONFIG"], False)
        assert "find_package(Protobuf 3.0 CONFIG QUIET)" in text
        assert 'MATCHES "^_yoda_"' in text
        assert "Protobuf_" not in text
        assert "NO_DEFAULT_PATH" not in text

    def test_render_no_default_path_and_quoting(self) -> None:
        text = render_probe("gtclang", ["HINTS", "/opt/my yoda"], True)
        assert 'find_package(gtclang HINTS "/opt/my yoda" NO_DEFAULT_PATH QUIET)' in text

    def test_parse_output(self) -> None:
        values = parse_probe_output(
            "ZSTD_FOUND=TRUE\nZSTD_INCLUDE_DIRS=/usr/include;/opt/include\n"
            "ZSTD_FLAGS=-DX=1\n\ngarbage\n"
        )
        assert values == {
            "ZSTD_FOUND": "TRUE",
            "ZSTD_INCLUDE_DIRS": "/usr/include;/opt/include",
            "ZSTD_FLAGS": "-DX=1",
        }


class TestCMakeLocator:
    def test_reads_probe_variables(self, tmp_path: Path) -> None:
        fake = FakeCMake("ZSTD_FOUND=TRUE\nZSTD_VERSION=1.5.0\n")
        locator = CMakeLocator(
            tmp_path / "_locate", generator="Ninja", prefix_path="/opt/yoda", executor=fake,
        )

        table = locator.locate("Zstd", [], False)

        assert table.to_dict() == {"ZSTD_FOUND": "TRUE", "ZSTD_VERSION": "1.5.0"}
        probe = tmp_path / "_locate" / "Zstd"
        assert (probe / "CMakeLists.txt").exists()
        assert fake.commands == [[
            "cmake", "-S", str(probe), "-B", str(probe / "build"),
            "-G", "Ninja", "-DCMAKE_PREFIX_PATH=/opt/yoda",
        ]]

    def test_failed_configure_without_output(self, tmp_path: Path) -> None:
        locator = CMakeLocator(tmp_path, executor=FakeCMake(None, returncode=1))
        assert len(locator.locate("Zstd", [], False)) == 0

    def test_stale_output_is_discarded(self, tmp_path: Path) -> None:
        CMakeLocator(tmp_path, executor=FakeCMake("ZSTD_FOUND=TRUE\n")).locate("Zstd", [], False)
        table = CMakeLocator(tmp_path, executor=FakeCMake(None, returncode=1)).locate("Zstd", [], False)
        assert len(table) == 0

    def test_cmake_not_installed(self, tmp_path: Path) -> None:
        locator = CMakeLocator(tmp_path, executor=MissingCMake())
        assert len(locator.locate("Zstd", [], False)) == 0

    def test_variables_without_package_prefix(self, tmp_path: Path) -> None:
        fake = FakeCMake(
            "Foo_FOUND=1\nFoo_VERSION=9.9\nLIBFOO_INCLUDE_DIR=/opt/foo/include\n"
            "PYTHON_EXECUTABLE=/usr/bin/python3\n"
        )
        locator = CMakeLocator(tmp_path, executor=fake)

        table = locator.locate("Foo", ["CONFIG"], False)
        assert table.lookup("LIBFOO_INCLUDE_DIR") == "/opt/foo/include"
        assert table.lookup("PYTHON_EXECUTABLE") == "/usr/bin/python3"

        request = PackageRequest(
            name="Foo", build_version="1.0", locator_args=("CONFIG",),
            required_vars=("LIBFOO_INCLUDE_DIR",),
        )
        graph = BuildGraph()
        provisioner = ExternalProjectProvisioner({}, graph, tmp_path)
        result = DependencyResolver(locator, provisioner, graph).resolve(request)
        assert result.provenance is Provenance.SYSTEM
        assert result.version == "9.9"
