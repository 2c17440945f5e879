"""Tests for the election seeding script's input handling."""

import importlib.util
import json
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "seed_elections.py"


@pytest.fixture(scope="module")
def seed_module():
    spec = importlib.util.spec_from_file_location("seed_elections", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def write_json(tmp_path: Path, data) -> Path:
    path = tmp_path / "elections.json"
    path.write_text(json.dumps(data))
    return path


def test_load_valid_file(seed_module, tmp_path):
    path = write_json(tmp_path, [{"title": "Mayor", "candidates": ["A", "B"]}])

    assert seed_module.load_elections(path) == [{"title": "Mayor", "candidates": ["A", "B"]}]


@pytest.mark.parametrize("data", [
    {"title": "Mayor"},
    [{"title": "Mayor", "candidates": []}],
    [{"candidates": ["A"]}],
    [{"title": "Mayor", "candidates": ["A", "A"]}],
    ["not a dict"],
    [{"title": "Mayor", "candidates": "AB"}],
])
def test_load_rejects_bad_definitions(seed_module, tmp_path, data):
    with pytest.raises(ValueError):
        seed_module.load_elections(write_json(tmp_path, data))


def test_sample_elections_have_unique_candidates(seed_module):
    for entry in seed_module.SAMPLE_ELECTIONS:
        assert len(set(entry["candidates"])) == len(entry["candidates"])
