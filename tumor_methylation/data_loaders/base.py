"""
Shared file handling for the input table loaders.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Union

import pandas as pd

logger = logging.getLogger(__name__)

# File suffixes read as tab-delimited; everything else is comma-delimited
TAB_SUFFIXES = {".tsv", ".txt", ".tab"}


class DataLoader(ABC):
    """
    Abstract base class for the loaders of the two input tables.

    Subclasses implement :meth:`load`; path resolution, delimiter
    detection and an in-memory read cache are shared.
    """

    def __init__(self, config: Any):
        """
        Args:
            config: Configuration object; ``config.base_dir`` anchors
                relative paths
        """
        self.config = config
        self._cache: Dict[str, pd.DataFrame] = {}

    @abstractmethod
    def load(self, file_path: Union[str, Path], **kwargs) -> pd.DataFrame:
        """Read, validate and standardize one input table."""

    def _locate(self, file_path: Union[str, Path]) -> Path:
        """
        Resolve ``file_path`` against the base directory and check it.

        Raises:
            FileNotFoundError: If nothing exists at the resolved path
            IsADirectoryError: If the path names a directory
        """
        path = Path(file_path)
        if not path.is_absolute() and self.config is not None:
            path = Path(self.config.base_dir) / path

        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")
        if path.is_dir():
            raise IsADirectoryError(f"Expected a file, got a directory: {path}")
        return path

    def _read_table(self, file_path: Path, **kwargs) -> pd.DataFrame:
        """Read a delimited file, choosing the separator from its suffix."""
        suffixes = [s.lower() for s in file_path.suffixes if s.lower() != ".gz"]
        sep = "\t" if suffixes and suffixes[-1] in TAB_SUFFIXES else ","

        key = f"{file_path}|{sorted(kwargs.items())}"
        if key not in self._cache:
            self._cache[key] = pd.read_csv(file_path, sep=sep, **kwargs)
        else:
            logger.debug(f"Reusing cached read of {file_path.name}")
        return self._cache[key].copy()
