"""
Pytest configuration and shared fixtures for BoardForge tests

Provides temporary board catalogs, project directories and helpers for
running real (but harmless) commands through the pipeline.
"""

import json
import sys
from pathlib import Path

import pytest
import yaml

from boardforge.providers.board.board_definitions import Board
from boardforge.providers.board.board_registry import BoardRegistry
from boardforge.services.command_pipeline import CommandSpec


def _python_command(code: str, cwd: Path = None) -> CommandSpec:
    return CommandSpec(sys.executable, ("-c", code), cwd=cwd)


def _write_board(directory: Path, filename: str, data: dict) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


@pytest.fixture
def boards_dir(tmp_path):
    """
    Temporary board catalog:

    - acme/main_a      main board, requires x and y, has a template
    - acme/periph_b    peripheral, requires z, has a snippet for z
    - acme/periph_c    peripheral, no crates
    - broken/bad.yaml  not a board mapping (skipped by the registry)
    """
    root = tmp_path / "boards"

    main_dir = root / "acme" / "main_a"
    _write_board(
        main_dir,
        "main_a.yaml",
        {"name": "Main A", "manufacturer": "Acme", "is_main_board": True, "required_crates": ["x", "y"]},
    )
    (main_dir / "template" / "src").mkdir(parents=True)
    (main_dir / "template" / "Cargo.toml").write_text('[package]\nname = "template"\n')
    (main_dir / "template" / "src" / "main.rs").write_text("fn main() {}\n")
    (main_dir / "bsp").mkdir()

    _write_board(
        root / "acme" / "periph_b",
        "periph_b.yaml",
        {"name": "Periph B", "manufacturer": "Acme", "is_main_board": False, "required_crates": ["z"]},
    )
    (root / "acme" / "periph_b" / "snippets" / "z").mkdir(parents=True)
    (root / "acme" / "periph_b" / "snippets" / "z" / "example.rs").write_text("let z = Z::new();\n")
    _write_board(
        root / "acme" / "periph_c",
        "periph_c.yml",
        {"name": "Periph C", "manufacturer": "Acme", "description": "no crates"},
    )

    (root / "broken").mkdir(parents=True)
    (root / "broken" / "bad.yaml").write_text("- just\n- a list\n")

    return root


@pytest.fixture
def registry(boards_dir):
    """BoardRegistry loaded from the temporary catalog"""
    return BoardRegistry(boards_dir)


@pytest.fixture
def main_board(registry):
    return registry.get_board("acme/main-a")


@pytest.fixture
def peripheral_b(registry):
    return registry.get_board("acme/periph-b")


@pytest.fixture
def peripheral_c(registry):
    return registry.get_board("acme/periph-c")


@pytest.fixture
def second_main_board():
    return Board(name="Main Z", manufacturer="Other", is_main_board=True)


@pytest.fixture
def python_command():
    """Factory for commands that run a snippet with the current interpreter"""
    return _python_command


@pytest.fixture
def project_dir(tmp_path):
    """Empty directory to save projects into"""
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def temp_preferences(tmp_path):
    """
    Create temporary preferences.json file for testing

    Returns:
        Path to temporary preferences file
    """
    prefs_file = tmp_path / "preferences.json"
    prefs_data = {
        "build": {"tool": "cargo", "stop_on_failure": True},
        "boards": {"directory": "/opt/boards"},
        "projects": {"recent": ["/home/user/blinky"]},
    }
    prefs_file.write_text(json.dumps(prefs_data, indent=2))
    return prefs_file


# Pytest configuration hooks
def pytest_configure(config):
    """
    Pytest configuration hook

    Add custom markers and configuration
    """
    config.addinivalue_line("markers", "subprocess: tests that spawn real child processes")
    config.addinivalue_line("markers", "slow: slow running tests")
