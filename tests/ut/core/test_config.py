"""配置加载、YAML 读写与日志配置测试"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from yodadeps.core import config as config_mod
from yodadeps.core.config import Config, get_config, init_config
from yodadeps.utils.logger import JSONFormatter, reset_logging, setup_logging
from yodadeps.utils.yaml_io import MAX_YAML_SIZE, load_yaml, save_yaml


class TestConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        cfg = Config.from_file(str(tmp_path / "nope.yml"))
        assert cfg == Config()
        assert cfg.locator == "cmake"
        assert cfg.no_system_libs is False

    def test_known_and_extra_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "yoda.yml"
        save_yaml(path, {"no_system_libs": True, "generator": "Ninja", "ci_runner": "gitlab"})
        cfg = Config.from_file(str(path))
        assert cfg.no_system_libs is True
        assert cfg.generator == "Ninja"
        assert cfg.extra == {"ci_runner": "gitlab"}
        assert cfg.to_dict()["generator"] == "Ninja"

    def test_init_config_replaces_global(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(config_mod, "_current", None)
        assert get_config().build_dir == "build"
        path = tmp_path / "yoda.yml"
        save_yaml(path, {"build_dir": "out"})
        init_config(str(path))
        assert get_config().build_dir == "out"


class TestYamlIO:
    def test_non_mapping_returns_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        assert load_yaml(path) == {}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert load_yaml(path) == {}

    def test_save_keeps_order_and_unicode(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "cache.yml"
        save_yaml(path, {"z": 1, "a": "系统库"})
        assert list(load_yaml(path)) == ["z", "a"]
        assert "系统库" in path.read_text(encoding="utf-8")
        assert [p.name for p in path.parent.iterdir()] == ["cache.yml"]

    def test_oversized_file(self, tmp_path: Path) -> None:
        path = tmp_path / "big.yml"
        path.write_bytes(b"#" * (MAX_YAML_SIZE + 1))
        with pytest.raises(ValueError, match="过大"):
            load_yaml(path)


class TestLogging:
    def teardown_method(self) -> None:
        reset_logging()

    def test_json_formatter(self) -> None:
        record = logging.LogRecord(
            "yodadeps.core.resolver", logging.INFO, __file__, 10,
            "Package %s not found due to missing: %s", ("Zstd", "ZSTD_FOUND"), None,
        )
        entry = json.loads(JSONFormatter().format(record))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "yodadeps.core.resolver"
        assert entry["message"] == "Package Zstd not found due to missing: ZSTD_FOUND"
        assert "exception" not in entry

    def test_setup_replaces_handlers(self) -> None:
        setup_logging("debug")
        setup_logging("warning", json_output=True)
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
