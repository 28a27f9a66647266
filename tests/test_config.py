"""Tests covering config defaults and environment handling."""

from __future__ import annotations

import pytest

from statement_grid.config import ColumnMode, GridConfig


@pytest.mark.smoke
def test_defaults_match_documented_thresholds():
    config = GridConfig()
    assert config.eps == 0.75
    assert config.overlap_threshold == 0.35
    assert config.paragraph_max_chars == 60
    assert config.max_cols == 6
    assert config.column_mode is ColumnMode.AUTO
    assert config.validate() is config


@pytest.mark.smoke
def test_relaxed_rows_switch_factor():
    assert GridConfig().row_factor == 0.7
    assert GridConfig(relaxed_rows=True).row_factor == 1.5


@pytest.mark.smoke
def test_from_env_overlays_values():
    """Environment values are parsed by the type of the default."""
    env = {
        "STATEMENT_GRID_MAX_COLS": "8",
        "STATEMENT_GRID_SMART_MODE": "no",
        "STATEMENT_GRID_COLUMN_MODE": "Form",
        "STATEMENT_GRID_OVERLAP_THRESHOLD": "0.5",
        "STATEMENT_GRID_KMEANS_GAP": "centroid",
        "STATEMENT_GRID_MERGE_VALUE_DATES": "yes",
        "STATEMENT_GRID_DESCRIPTION_CUT": "Last_Number",
        "UNRELATED": "1",
    }
    config = GridConfig.from_env(env)
    assert config.max_cols == 8
    assert config.smart_mode is False
    assert config.column_mode is ColumnMode.FORM
    assert config.overlap_threshold == 0.5
    assert config.kmeans_gap == "centroid"
    assert config.merge_value_dates is True
    assert config.description_cut == "last_number"


@pytest.mark.smoke
def test_from_env_skips_bad_values_and_honours_overrides():
    env = {"STATEMENT_GRID_EPS": "wide", "STATEMENT_GRID_MAX_COLS": "4"}
    config = GridConfig.from_env(env, max_cols=5)
    assert config.eps == 0.75
    assert config.max_cols == 5


@pytest.mark.smoke
def test_from_env_reads_process_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STATEMENT_GRID_VERBOSE", "yes")
    assert GridConfig.from_env().verbose is True


@pytest.mark.smoke
@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_cols": 1},
        {"overlap_threshold": 0.0},
        {"overlap_threshold": 1.5},
        {"eps": -1.0},
        {"paragraph_max_chars": 0},
        {"kmeans_gap": "median"},
        {"column_mode": "auto"},
        {"description_cut": "middle"},
    ],
)
def test_validate_rejects(kwargs):
    with pytest.raises(ValueError):
        GridConfig(**kwargs).validate()
