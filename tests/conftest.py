"""Shared test fixtures."""

from pathlib import Path

import pytest

from rem.fs.memory import InMemoryFS
from rem.fs.scoped import ScopedFS
from rem.stack.manager import StackManager


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point $HOME at a temporary directory."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def history_dir(tmp_path: Path) -> Path:
    path = tmp_path / "history"
    path.mkdir()
    return path


@pytest.fixture(params=["disk", "memory"])
def stack_fs(request: pytest.FixtureRequest, history_dir: Path):
    """Each backend the stack runs on."""
    if request.param == "disk":
        return ScopedFS(history_dir)
    return InMemoryFS()


@pytest.fixture
def manager(stack_fs) -> StackManager:
    return StackManager(stack_fs, max_size=20)


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    """Create a minimal valid config YAML file."""
    config = tmp_path / "config.yaml"
    config.write_text(
        """\
history_limit: 50
show_binary: true
history_location: "custom"
"""
    )
    return config


@pytest.fixture
def empty_config_yaml(tmp_path: Path) -> Path:
    """Create an empty config YAML file."""
    config = tmp_path / "config.yaml"
    config.write_text("{}\n")
    return config
