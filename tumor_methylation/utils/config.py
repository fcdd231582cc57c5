"""
Configuration management for the methylation analysis pipeline.

Supports loading configurations from YAML files for:
- Input file locations and clinical column names
- Tissue-type vocabulary and label encoding
- Statistical and model parameters
- Visualization settings
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


def _deep_update(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``updates`` into ``base`` in place."""
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


class Config:
    """
    Central configuration class for the methylation analysis pipeline.

    Defaults describe the TCGA tumor/normal-adjacent layout; a YAML file
    can override any section and command-line flags override both.

    Attributes:
        base_dir: Root directory that relative paths are resolved against
        data_dir: Directory containing input data
        output_dir: Directory for result tables and figures
        files: Input file locations (methylation matrix, clinical table)
        column_mapping: Clinical column names for sample, tissue and patient
        tissue_vocabulary: Raw tissue-type values -> canonical group names
        class_mapping: Canonical group names -> binary label
        analysis_params: Statistical and model hyperparameters
        viz_params: Visualization settings
    """

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        base_dir: Optional[Union[str, Path]] = None
    ):
        """
        Initialize configuration.

        Args:
            config_file: Path to YAML config file. If None, uses defaults.
            base_dir: Project root; defaults to the repository checkout
        """
        if base_dir is None:
            base_dir = Path(__file__).resolve().parent.parent.parent
        self.base_dir = Path(base_dir)

        self._init_defaults()

        if config_file:
            self._load_yaml(config_file)

    def _init_defaults(self):
        """Initialize default configuration values."""
        # Directories
        self.data_dir = self.base_dir / "data"
        self.output_dir = self.base_dir / "results"

        # Input files (relative to base_dir)
        self.files = {
            "methylation": "data/raw/methylation_beta_values.csv",
            "clinical": "data/raw/clinical_samples.csv",
        }

        # Clinical column names (TCGA / UCSC Xena phenotype layout)
        self.column_mapping = {
            "sample_id": "sampleID",
            "tissue": "sample_type",
            "patient": "_PATIENT",
        }

        # Raw tissue-type vocabulary
        self.tissue_vocabulary = {
            "Primary Tumor": "tumor",
            "Solid Tissue Normal": "normal-adjacent",
        }

        # Reference category is normal-adjacent
        self.class_mapping = {
            "normal-adjacent": 0,
            "tumor": 1,
        }

        # Statistical and model parameters
        self.analysis_params = {
            "random_state": 42,
            "alpha": 0.05,
            "gc_floor_at_one": True,
            "n_permutations": 10,
            "correlation_max_sites": 500,
            "pca": {
                "n_components": None,
                "scale": True
            },
            "classifier": {
                "test_size": 0.3,
                "stratify_split": False,
                "cv_folds": 5,
                "Cs": [0.001, 0.003, 0.01, 0.03, 0.1, 0.3, 1.0],
                "l1_ratios": [0.1, 0.5, 0.9],
                "path_Cs": [0.001, 0.003, 0.01, 0.03, 0.1, 0.3, 1.0, 3.0],
                "max_iter": 5000,
                "tol": 1e-4,
                "strict_convergence": True
            }
        }

        # Visualization parameters
        self.viz_params = {
            "dpi": 300,
            "format": "pdf",
            "figure_sizes": {
                "single": (6, 5),
                "wide": (8, 6),
                "tall": (6, 8)
            },
            "font_sizes": {
                "title": 12,
                "label": 11,
                "tick": 10,
                "legend": 9
            },
            "colors": {
                "tumor": "#e74c3c",
                "normal-adjacent": "#3498db",
                "permuted": "#95a5a6",
                "highlight": "#2ecc71"
            }
        }

    def _load_yaml(self, config_file: Union[str, Path]):
        """Load configuration from YAML file."""
        config_path = Path(config_file)
        if not config_path.is_absolute():
            config_path = self.base_dir / config_path

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
        self._update_from_dict(config_data)

    def _update_from_dict(self, config_dict: Dict[str, Any]):
        """Update configuration from dictionary."""
        for section in ("files", "column_mapping", "analysis_params", "viz_params"):
            if section in config_dict:
                _deep_update(getattr(self, section), copy.deepcopy(config_dict[section]))

        # Vocabularies are replaced, not merged
        if "tissue_vocabulary" in config_dict:
            self.tissue_vocabulary = dict(config_dict["tissue_vocabulary"])
        if "class_mapping" in config_dict:
            self.class_mapping = dict(config_dict["class_mapping"])

        if "output_dir" in config_dict:
            self.output_dir = self.resolve_path(config_dict["output_dir"])
        if "data_dir" in config_dict:
            self.data_dir = self.resolve_path(config_dict["data_dir"])

    def resolve_path(self, path: Union[str, Path]) -> Path:
        """Resolve a path relative to the base directory if not absolute."""
        path = Path(path)
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def get_data_path(self, file_key: str) -> Path:
        """Get full path for an input file."""
        if file_key in self.files:
            return self.resolve_path(self.files[file_key])
        return self.data_dir / file_key

    @property
    def random_state(self) -> int:
        return self.analysis_params["random_state"]

    @property
    def figures_dir(self) -> Path:
        return self.output_dir / "plots"

    @property
    def tables_dir(self) -> Path:
        return self.output_dir / "tables"

    def __repr__(self) -> str:
        return (
            f"Config(methylation='{self.files['methylation']}', "
            f"clinical='{self.files['clinical']}', "
            f"base_dir='{self.base_dir}')"
        )


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    base_dir: Optional[Union[str, Path]] = None
) -> Config:
    """
    Load configuration for the analysis pipeline.

    Args:
        config_file: Path to custom YAML configuration file
        base_dir: Project root for resolving relative paths

    Returns:
        Config object with all settings loaded

    Example:
        >>> config = load_config("configs/analysis.yaml")
        >>> config.analysis_params["classifier"]["cv_folds"]
        5
    """
    return Config(config_file=config_file, base_dir=base_dir)
