"""关键字参数解析 / PackageRequest 构造测试"""

from __future__ import annotations

import pytest

from yodadeps.core.arguments import (
    parse_mapping,
    parse_tokens,
    require_arg,
    require_only_one_of,
)
from yodadeps.core.exceptions import ArgumentError, MissingArgumentError
from yodadeps.core.models import PackageRequest

OPTIONS = ("NO_DEFAULT_PATH",)
ONE = ("PACKAGE", "VERSION_VAR")
MULTI = ("REQUIRED_VARS", "PACKAGE_ARGS")


class TestParseTokens:
    def test_all_kinds(self) -> None:
        args = parse_tokens(
            ["PACKAGE", "Zstd", "NO_DEFAULT_PATH", "REQUIRED_VARS", "A", "B",
             "PACKAGE_ARGS", "1.5", "CONFIG"],
            OPTIONS, ONE, MULTI,
        )
        assert args.value("PACKAGE") == "Zstd"
        assert args.flag("NO_DEFAULT_PATH") is True
        assert args.items("REQUIRED_VARS") == ["A", "B"]
        assert args.items("PACKAGE_ARGS") == ["1.5", "CONFIG"]
        assert args.value("VERSION_VAR") is None

    def test_empty_multi_value(self) -> None:
        args = parse_tokens(["REQUIRED_VARS", "PACKAGE", "x"], OPTIONS, ONE, MULTI)
        assert args.items("REQUIRED_VARS") == []
        assert "REQUIRED_VARS" in args.lists

    @pytest.mark.parametrize("tokens", [
        ["stray", "PACKAGE", "Zstd"],
        ["PACKAGE", "Zstd", "extra"],
        ["BOGUS_KEYWORD", "PACKAGE", "Zstd"],
    ])
    def test_unparsed_tokens_rejected(self, tokens: list[str]) -> None:
        with pytest.raises(ArgumentError, match="无效参数"):
            parse_tokens(tokens, OPTIONS, ONE, MULTI)

    def test_duplicate_keyword_rejected(self) -> None:
        with pytest.raises(ArgumentError, match="重复"):
            parse_tokens(["PACKAGE", "a", "PACKAGE", "b"], OPTIONS, ONE, MULTI)


class TestParseMapping:
    def test_case_insensitive_keys(self) -> None:
        args = parse_mapping(
            {"package": "Zstd", "required_vars": "ZSTD_FOUND", "no_default_path": True},
            OPTIONS, ONE, MULTI,
        )
        assert args.value("PACKAGE") == "Zstd"
        assert args.items("REQUIRED_VARS") == ["ZSTD_FOUND"]
        assert args.flag("NO_DEFAULT_PATH") is True

    def test_same_key_in_two_spellings_is_duplicate(self) -> None:
        with pytest.raises(ArgumentError, match="重复"):
            parse_mapping({"package": "a", "PACKAGE": "b"}, OPTIONS, ONE, MULTI)

    def test_unknown_key(self) -> None:
        with pytest.raises(ArgumentError, match="无效参数: colour"):
            parse_mapping({"package": "a", "colour": "red"}, OPTIONS, ONE, MULTI)

    @pytest.mark.parametrize(("data", "match"), [
        ({"no_default_path": "yes"}, "开关"),
        ({"package": ["a", "b"]}, "单个值"),
        ({"required_vars": {"a": 1}}, "列表"),
    ])
    def test_type_errors(self, data: dict, match: str) -> None:
        with pytest.raises(ArgumentError, match=match):
            parse_mapping(data, OPTIONS, ONE, MULTI)


class TestRequire:
    @pytest.mark.parametrize("value", [None, ""])
    def test_require_arg_missing(self, value: object) -> None:
        with pytest.raises(MissingArgumentError, match="PACKAGE"):
            require_arg("PACKAGE", value)

    def test_only_one_of(self) -> None:
        assert require_only_one_of({"A": ["x"], "B": [None, None]}) == "A"
        with pytest.raises(ArgumentError, match="互斥"):
            require_only_one_of({"A": ["x"], "B": ["y", None]})
        with pytest.raises(ArgumentError, match="之一"):
            require_only_one_of({"A": [None], "B": [""]})


class TestPackageRequest:
    def test_from_tokens(self) -> None:
        r = PackageRequest.from_tokens([
            "PACKAGE", "Protobuf", "BUILD_VERSION", "3.21.12",
            "PACKAGE_ARGS", "3.0", "CONFIG", "REQUIRED_VARS", "Protobuf_DIR",
            "VERSION_VAR", "Protobuf_VERSION", "DEPENDS", "Zstd",
            "FORWARD_VARS", "BINARY_DIR", "pb_bin",
        ])
        assert r.name == "Protobuf"
        assert r.locator_args == ("3.0", "CONFIG")
        assert r.required_vars == ("Protobuf_DIR",)
        assert r.version_var == "Protobuf_VERSION"
        assert r.depends == ("Zstd",)
        assert r.forward_vars == ("BINARY_DIR", "pb_bin")
        assert r.prefer_system is True
        assert (r.upper, r.target, r.option_name) == ("PROTOBUF", "protobuf", "USE_SYSTEM_PROTOBUF")

    def test_from_mapping_forward_vars_dict(self) -> None:
        r = PackageRequest.from_mapping({
            "package": "gtclang", "build_version": "0.0.1",
            "forward_vars": {"BINARY_DIR": "gtclang_binary_dir"},
        })
        assert r.forward_vars == ("BINARY_DIR", "gtclang_binary_dir")

    @pytest.mark.parametrize(("tokens", "missing"), [
        (["BUILD_VERSION", "1.0"], "PACKAGE"),
        (["PACKAGE", "Zstd"], "BUILD_VERSION"),
    ])
    def test_missing_mandatory(self, tokens: list[str], missing: str) -> None:
        with pytest.raises(MissingArgumentError) as exc_info:
            PackageRequest.from_tokens(tokens)
        assert exc_info.value.argument == missing

    def test_immutable(self) -> None:
        r = PackageRequest(name="Zstd", build_version="1.5.2")
        with pytest.raises(AttributeError):
            r.name = "other"  # type: ignore[misc]
        assert r.with_preference(False).prefer_system is False
        assert r.prefer_system is True
