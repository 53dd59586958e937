"""
Shared fixtures for no-implicit-deps tests.
"""

import json
from pathlib import Path

import pytest

from implicit_deps.cli_config import reset_config


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep config files and environment variables of the host out of tests."""
    for key in [
        "NO_IMPLICIT_DEPS_DEV",
        "NO_IMPLICIT_DEPS_OPTIONAL",
        "NO_IMPLICIT_DEPS_IGNORE",
        "NO_IMPLICIT_DEPS_LOG_LEVEL",
        "NO_IMPLICIT_DEPS_OUTPUT_FORMAT",
    ]:
        monkeypatch.delenv(key, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)

    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    """Directory for test projects."""
    project = tmp_path / "workspace"
    project.mkdir()
    return project


@pytest.fixture
def write_package_json(temp_dir):
    """Factory writing a package.json into a directory of the test project."""

    def _write(content, directory: Path = None) -> Path:
        target_dir = directory or temp_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        manifest = target_dir / "package.json"
        if isinstance(content, str):
            manifest.write_text(content, encoding="utf-8")
        else:
            manifest.write_text(json.dumps(content, indent=2), encoding="utf-8")
        return manifest

    return _write


@pytest.fixture
def write_source(temp_dir):
    """Factory writing a source file relative to the test project."""

    def _write(relative_path: str, text: str) -> Path:
        path = temp_dir / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_project(temp_dir, write_package_json, write_source):
    """A small project with one declared and one undeclared import."""
    write_package_json(
        {
            "name": "sample",
            "dependencies": {"lodash": "^4.17.21", "@myorg/utils": "1.0.0"},
            "devDependencies": {"chai": "^4.3.0"},
            "peerDependencies": {"react": ">=17"},
            "optionalDependencies": {"fsevents": "^2.3.0"},
        }
    )
    write_source(
        "src/index.ts",
        "import * as _ from 'lodash';\n"
        "import { helper } from '@myorg/utils/helpers';\n"
        "import leftPad from 'left-pad';\n"
        "import { readFile } from 'fs';\n"
        "import { local } from './local';\n",
    )
    write_source("src/local.ts", "export const local = 1;\n")
    return temp_dir
