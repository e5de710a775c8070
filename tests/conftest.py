"""Pytest configuration and fixtures for Diff1cult tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch):
    """Point the config file at an empty temp location.

    Keeps a developer's ~/.diff1cult/config.toml from changing test results.
    """
    monkeypatch.setattr("diff1cult.config.BASE_DIR", tmp_path / "home")
    monkeypatch.setattr("diff1cult.config.CONFIG_FILE", tmp_path / "home" / "config.toml")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def game_mod_path() -> Path:
    """Old / new game sources plus a mod that patches them."""
    return Path(__file__).parent / "fixtures" / "game_mod"


@pytest.fixture
def old_source_path(game_mod_path: Path) -> Path:
    return game_mod_path / "old"


@pytest.fixture
def new_source_path(game_mod_path: Path) -> Path:
    return game_mod_path / "new"


@pytest.fixture
def mod_source_path(game_mod_path: Path) -> Path:
    return game_mod_path / "mod"


@pytest.fixture
def csharp_parser():
    """A CSharpParser, skipping the test when the grammar is not installed."""
    pytest.importorskip("tree_sitter_c_sharp")
    from diff1cult.parser import CSharpParser

    return CSharpParser()


@pytest.fixture
def sample_csharp_code() -> str:
    """Sample C# code for testing the parser."""
    return '''using HarmonyLib;

namespace Game.Core
{
    public partial class World
    {
        public void Update()
        {
            int ticks = 0;
            ticks++;
        }

        public abstract void Render();

        public class Region
        {
            public void Flood() { }
        }
    }

    public struct Cell
    {
        public int Height() { return 0; }
    }
}

namespace Patches
{
    [HarmonyPatch(typeof(Game.Core.World), "Update")]
    public static class World_Update_Patch
    {
        [HarmonyPrefix]
        public static void Prefix() { }
    }
}
'''
