"""Tests for the Jest configuration probe (adapters/jest.py)."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest

from nxcov.adapters.jest import (
    SHOW_CONFIG_COMMAND,
    JestConfig,
    parse_show_config,
    probe_jest_config,
)
from nxcov.utils.subprocess_runner import SubprocessError, SubprocessResult

if TYPE_CHECKING:
    from pathlib import Path

_RUN = "nxcov.adapters.jest.run_subprocess"


def _show_config(
    directory: str | None = "/repo/coverage/libs/a", reporters: object = None
) -> str:
    global_config: dict[str, object] = {
        "coverageReporters": reporters if reporters is not None else ["json-summary", "text"],
    }
    if directory is not None:
        global_config["coverageDirectory"] = directory
    return json.dumps({"configs": [{}], "globalConfig": global_config, "version": "29.7.0"})


def _ok(stdout: str) -> SubprocessResult:
    return SubprocessResult(returncode=0, stdout=stdout, stderr="", success=True)


# ── parse_show_config ────────────────────────────────────────────


class TestParseShowConfig:
    def test_parses_directory_and_reporters(self) -> None:
        config = parse_show_config(_show_config())

        assert config.coverage_directory == "/repo/coverage/libs/a"
        assert config.coverage_reporters == ["json-summary", "text"]
        assert config.writes_json_summary

    def test_reporter_with_options(self) -> None:
        config = parse_show_config(
            _show_config(reporters=[["json-summary", {"file": "summary.json"}], "lcov"])
        )

        assert config.coverage_reporters == ["json-summary", "lcov"]

    def test_without_json_summary(self) -> None:
        config = parse_show_config(_show_config(reporters=["lcov"]))

        assert not config.writes_json_summary

    def test_missing_directory(self) -> None:
        config = parse_show_config(_show_config(directory=None))

        assert config.coverage_directory is None

    def test_not_json(self) -> None:
        with pytest.raises(ValueError):
            parse_show_config("Error: Cannot find module 'jest'")

    def test_not_an_object(self) -> None:
        with pytest.raises(ValueError, match="not a JSON object"):
            parse_show_config("[]")

    def test_missing_global_config(self) -> None:
        with pytest.raises(ValueError, match="globalConfig"):
            parse_show_config(json.dumps({"configs": []}))


def test_jest_config_defaults() -> None:
    config = JestConfig()

    assert config.coverage_directory is None
    assert not config.writes_json_summary


# ── probe_jest_config ────────────────────────────────────────────


class TestProbeJestConfig:
    async def test_runs_show_config_in_project_root(self, tmp_path: Path) -> None:
        with patch(_RUN, new=AsyncMock(return_value=_ok(_show_config()))) as mock_run:
            config = await probe_jest_config(tmp_path, timeout=12.0)

        assert config is not None
        assert config.coverage_directory == "/repo/coverage/libs/a"
        mock_run.assert_awaited_once_with(list(SHOW_CONFIG_COMMAND), cwd=tmp_path, timeout=12.0)

    async def test_relative_directory_resolved_against_project(self, tmp_path: Path) -> None:
        with patch(_RUN, new=AsyncMock(return_value=_ok(_show_config(directory="coverage")))):
            config = await probe_jest_config(tmp_path)

        assert config is not None
        assert config.coverage_directory == str(tmp_path / "coverage")

    async def test_command_failure(self, tmp_path: Path) -> None:
        failed = SubprocessResult(returncode=1, stdout="", stderr="boom", success=False)
        with patch(_RUN, new=AsyncMock(return_value=failed)):
            assert await probe_jest_config(tmp_path) is None

    async def test_command_cannot_start(self, tmp_path: Path) -> None:
        error = SubprocessError(
            "Command not found: npx",
            result=SubprocessResult(returncode=-1, stdout="", stderr="", success=False),
        )
        with patch(_RUN, new=AsyncMock(side_effect=error)):
            assert await probe_jest_config(tmp_path) is None

    async def test_unparseable_output(self, tmp_path: Path) -> None:
        with patch(_RUN, new=AsyncMock(return_value=_ok("not json"))):
            assert await probe_jest_config(tmp_path) is None
