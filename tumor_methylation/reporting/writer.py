"""
Tabular export of stage outputs for the report renderer.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from ..analysis import (
    AssociationResult,
    DescriptiveSummary,
    PCAResult,
    PermutationDiagnostic,
)
from ..models import ClassifierEvaluation, ClassifierModel, RegularizationPath

logger = logging.getLogger(__name__)


class ResultWriter:
    """
    Write analysis outputs as CSV tables into one directory.

    Every ``write_*`` method returns the paths it wrote, keyed by table name.
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def _write(self, df: pd.DataFrame, filename: str, index: bool = True) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        df.to_csv(path, index=index)
        logger.debug(f"  Wrote {path}")
        return path

    def write_descriptive(self, summary: DescriptiveSummary) -> Dict[str, Path]:
        quantiles = summary.value_quantiles.rename_axis("quantile").to_frame()
        return {
            "group_statistics": self._write(
                summary.group_stats.rename_axis("site_id"), "group_statistics.csv"
            ),
            "site_correlation": self._write(
                summary.site_correlation, "site_correlation.csv"
            ),
            "value_distribution": self._write(
                summary.value_histogram, "value_distribution.csv", index=False
            ),
            "value_quantiles": self._write(quantiles, "value_quantiles.csv"),
        }

    def write_association(self, result: AssociationResult) -> Dict[str, Path]:
        """Write the per-site table and the significant subset."""
        table = result.table.rename_axis("site_id")
        significant = table.loc[table["significant"], [
            "delta_beta", "p_value", "p_value_gc", "p_value_bonferroni"
        ]]
        return {
            "association_results": self._write(table, "association_results.csv"),
            "significant_sites": self._write(significant, "significant_sites.csv"),
        }

    def write_permutation(self, diagnostic: PermutationDiagnostic) -> Dict[str, Path]:
        table = diagnostic.quantiles.join(diagnostic.permuted_lambdas)
        return {
            "permutation_diagnostic": self._write(
                table.rename_axis("labels"), "permutation_diagnostic.csv"
            ),
        }

    def write_pca(self, result: PCAResult) -> Dict[str, Path]:
        variance = pd.DataFrame({
            "sdev": result.sdev,
            "explained_variance_ratio": result.explained_variance_ratio,
            "cumulative_ratio": result.explained_variance_ratio.cumsum(),
        }).rename_axis("component")
        return {
            "pca_scores": self._write(result.scores.rename_axis("sample_id"), "pca_scores.csv"),
            "pca_loadings": self._write(result.loadings.rename_axis("site_id"), "pca_loadings.csv"),
            "pca_variance": self._write(variance, "pca_variance.csv"),
        }

    def write_classifier(
        self,
        model: ClassifierModel,
        evaluation: ClassifierEvaluation,
        path: Optional[RegularizationPath] = None,
        corroborated: Optional[List[str]] = None
    ) -> Dict[str, Path]:
        """
        Write coefficients, confusion matrix, metrics and optional extras.

        Only non-zero, non-intercept coefficients are exported.
        """
        coefficients = model.nonzero_coefficients().rename_axis("site_id").to_frame()

        metrics = {
            "C": model.C,
            "penalty_strength": model.penalty_strength,
            "l1_ratio": model.l1_ratio,
            "intercept": model.intercept,
            "cv_auc": model.cv_auc,
            "n_nonzero": len(coefficients),
        }
        metrics.update(evaluation.to_dict())

        written = {
            "classifier_coefficients": self._write(
                coefficients, "classifier_coefficients.csv"
            ),
            "confusion_matrix": self._write(evaluation.confusion, "confusion_matrix.csv"),
            "classifier_metrics": self._write(
                pd.DataFrame([metrics]), "classifier_metrics.csv", index=False
            ),
            "cv_results": self._write(model.cv_results, "cv_results.csv", index=False),
        }

        if path is not None:
            written["regularization_path"] = self._write(
                path.summary, "regularization_path.csv", index=False
            )

        if corroborated is not None:
            overlap = pd.DataFrame({
                "site_id": corroborated,
                "coefficient": [model.coefficients[s] for s in corroborated],
            })
            written["corroborated_sites"] = self._write(
                overlap, "corroborated_sites.csv", index=False
            )

        return written
