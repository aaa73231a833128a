"""Tests for buildbus.config."""

from pathlib import Path

import pytest

from buildbus.config import BusConfig, read_pyproject


class TestBusConfig:
    def test_defaults(self, tmp_path: Path) -> None:
        config = BusConfig.load(tmp_path, environ={})
        assert config == BusConfig()
        assert config.namespace == "buildbus"
        assert config.builtin_targets is True
        assert config.tracking is False

    def test_pyproject_table(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(
            """
[project]
name = "storefront"

[tool.buildbus]
namespace = "shopbus"
additional-deps = ["theme-extras"]
trusted-vendors = ["acme"]
builtin-targets = false
tracking = true
"""
        )
        config = BusConfig.load(tmp_path, environ={})
        assert config.project_name == "storefront"
        assert config.namespace == "shopbus"
        assert config.additional_deps == ["theme-extras"]
        assert config.trusted_vendors == ["acme"]
        assert config.builtin_targets is False
        assert config.tracking is True

    def test_environment_overrides_pyproject(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[tool.buildbus]\nadditional-deps = ["a"]\ntracking = true\n')
        config = BusConfig.load(
            tmp_path,
            environ={"BUILDBUS_DEPS_ADDITIONAL": "b, c,,", "BUILDBUS_TRACKING": "off"},
        )
        assert config.additional_deps == ["b", "c"]
        assert config.tracking is False

    @pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
    def test_truthy_tracking_values(self, tmp_path: Path, value: str) -> None:
        assert BusConfig.load(tmp_path, environ={"BUILDBUS_TRACKING": value}).tracking is True

    def test_invalid_pyproject(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[tool.buildbus\n")
        with pytest.raises(ValueError, match="Invalid pyproject.toml"):
            read_pyproject(tmp_path)
