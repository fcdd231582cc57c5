"""Tests for configuration defaults and YAML overrides."""

from pathlib import Path

import pytest
import yaml

from tumor_methylation.utils.config import Config, load_config


def test_defaults(tmp_path):
    config = Config(base_dir=tmp_path)
    assert config.random_state == 42
    assert config.class_mapping == {"normal-adjacent": 0, "tumor": 1}
    assert config.analysis_params["classifier"]["stratify_split"] is False
    assert config.analysis_params["gc_floor_at_one"] is True
    assert config.get_data_path("methylation") == tmp_path / "data/raw/methylation_beta_values.csv"
    assert config.tables_dir == tmp_path / "results" / "tables"
    assert config.figures_dir == tmp_path / "results" / "plots"


def test_yaml_deep_merges_parameters(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text(yaml.safe_dump({
        "output_dir": "out",
        "analysis_params": {
            "alpha": 0.01,
            "classifier": {"cv_folds": 3},
        },
        "column_mapping": {"tissue": "tissue_type"},
    }))

    config = load_config(path, base_dir=tmp_path)

    assert config.analysis_params["alpha"] == 0.01
    assert config.analysis_params["classifier"]["cv_folds"] == 3
    # untouched keys of a merged section survive
    assert config.analysis_params["classifier"]["test_size"] == 0.3
    assert config.analysis_params["pca"]["scale"] is True
    assert config.column_mapping["tissue"] == "tissue_type"
    assert config.column_mapping["sample_id"] == "sampleID"
    assert config.output_dir == tmp_path / "out"


def test_yaml_replaces_vocabulary(tmp_path):
    path = tmp_path / "vocab.yaml"
    path.write_text(yaml.safe_dump({
        "tissue_vocabulary": {"T": "tumor", "N": "normal-adjacent"},
    }))

    config = Config(config_file="vocab.yaml", base_dir=tmp_path)

    assert config.tissue_vocabulary == {"T": "tumor", "N": "normal-adjacent"}


def test_empty_yaml_keeps_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    config = Config(config_file=path, base_dir=tmp_path)
    assert config.analysis_params["n_permutations"] == 10


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config(config_file="nope.yaml", base_dir=tmp_path)


def test_instances_do_not_share_state(tmp_path):
    first = Config(base_dir=tmp_path)
    first.analysis_params["classifier"]["cv_folds"] = 2
    second = Config(base_dir=tmp_path)
    assert second.analysis_params["classifier"]["cv_folds"] == 5


def test_shipped_config_matches_defaults(tmp_path):
    shipped = Path(__file__).resolve().parent.parent / "configs" / "analysis.yaml"
    config = Config(config_file=shipped, base_dir=tmp_path)
    defaults = Config(base_dir=tmp_path)
    assert config.analysis_params == defaults.analysis_params
    assert config.tissue_vocabulary == defaults.tissue_vocabulary
