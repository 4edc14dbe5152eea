"""Shared pytest fixtures for the create-ttpg-package test suite.

Provides reusable fixtures for:
- Resolved project configs
- A recording stand-in for the package manager install
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from create_ttpg_package.answers import ProjectConfig, ProjectGuids


# ---------------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------------

@pytest.fixture
def make_config():
    """Factory for ``ProjectConfig`` with sensible test defaults."""

    def _make(**overrides) -> ProjectConfig:
        values = {
            "project_id": "demo",
            "title": "demo",
            "slug": "demo",
            "directory_name": "demo",
            "template": "javascript",
            "version": "0.0.1",
            "guids": ProjectGuids(dev="D" * 32, prd="F" * 32),
            "ttpg_path": None,
            "auto_confirm": True,
        }
        values.update(overrides)
        return ProjectConfig(**values)

    return _make


# ---------------------------------------------------------------------------
# Installer
# ---------------------------------------------------------------------------

class FakeInstaller:
    """Records ``subprocess.run`` calls and optionally fails them."""

    def __init__(self):
        self.calls: list[tuple[list[str], dict]] = []
        self.returncode = 0
        self.spawn_error: OSError | None = None

    def __call__(self, cmd, **kwargs):
        self.calls.append((list(cmd), kwargs))
        if self.spawn_error is not None:
            raise self.spawn_error
        if self.returncode and kwargs.get("check"):
            raise subprocess.CalledProcessError(self.returncode, cmd, output="", stderr="install exploded")
        return subprocess.CompletedProcess(cmd, self.returncode, "", "")


@pytest.fixture
def fake_installer(monkeypatch) -> FakeInstaller:
    installer = FakeInstaller()
    monkeypatch.setattr("create_ttpg_package.builder.subprocess.run", installer)
    return installer


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch) -> Path:
    """Temporary current working directory for a run."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
