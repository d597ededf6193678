"""
Shared fixtures: a throwaway workspace and helpers to write plugin scripts.
"""
import sys
import textwrap
from pathlib import Path

import pytest

from costa.runtime.types import PipcookScript, PipelineWorkspace


@pytest.fixture
def workspace(tmp_path) -> PipelineWorkspace:
    """Workspace whose four directories live under tmp_path."""
    dirs = {}
    for key in ("data_dir", "model_dir", "cache_dir", "framework_dir"):
        path = tmp_path / key.replace("_dir", "")
        path.mkdir()
        dirs[key] = str(path)
    return PipelineWorkspace(**dirs)


@pytest.fixture
def write_script(tmp_path):
    """Write a script file and return its PipcookScript descriptor."""
    scripts_dir = tmp_path / "scripts"
    scripts_dir.mkdir()

    def _write(name: str, source: str, query=None) -> PipcookScript:
        path = scripts_dir / f"{name}.py"
        path.write_text(textwrap.dedent(source))
        return PipcookScript(name=name, path=str(path), query=query or {})

    return _write


@pytest.fixture
def clean_modules():
    """Remove the listed top-level modules from sys.modules after the test."""
    names = []
    yield names
    for name in names:
        for key in [k for k in sys.modules if k == name or k.startswith(name + ".")]:
            del sys.modules[key]


@pytest.fixture
def write_module():
    """Write `name.py` under a package root, creating the root if needed."""
    def _write(root: Path, name: str, source: str) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        path = root / f"{name}.py"
        path.write_text(textwrap.dedent(source))
        return path

    return _write
