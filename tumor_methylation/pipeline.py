"""
End-to-end tumor vs normal-adjacent methylation analysis.

Stages run once, in order, and hand immutable results to the next:

    load -> describe -> univariate tests -> PCA -> elastic net -> export

Any stage error propagates and aborts the run.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .analysis import (
    AssociationResult,
    DescriptiveSummarizer,
    DescriptiveSummary,
    MethylationPCA,
    PCAResult,
    PermutationDiagnostic,
    UnivariateAssociationEngine,
)
from .data_loaders import ClinicalLoader, MethylationDataLoader, MethylationDataset
from .models import (
    ClassifierEvaluation,
    ClassifierModel,
    PenalizedClassifier,
    RegularizationPath,
    cross_reference,
)
from .reporting import ResultWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResults:
    """Outputs of every stage of one run."""

    dataset: MethylationDataset
    descriptive: DescriptiveSummary
    association: AssociationResult
    pca: PCAResult
    model: ClassifierModel
    evaluation: ClassifierEvaluation
    regularization_path: RegularizationPath
    corroborated_sites: List[str]
    permutation: Optional[PermutationDiagnostic] = None
    written: Dict[str, Path] = field(default_factory=dict)


class AnalysisPipeline:
    """
    Run the complete analysis from two input files.

    Encapsulates all steps: data loading, descriptive statistics,
    univariate testing, PCA, classification, export and plotting.
    """

    def __init__(self, config: Any):
        """
        Initialize pipeline components from configuration.

        Args:
            config: Configuration object (see ``utils.config.Config``)
        """
        self.config = config
        params = config.analysis_params
        seed = config.random_state

        self.meth_loader = MethylationDataLoader(config)
        self.clinical_loader = ClinicalLoader(config)
        self.summarizer = DescriptiveSummarizer(
            correlation_max_sites=params["correlation_max_sites"],
            random_state=seed
        )
        self.engine = UnivariateAssociationEngine(
            alpha=params["alpha"],
            gc_floor_at_one=params["gc_floor_at_one"],
            random_state=seed
        )
        self.reducer = MethylationPCA(
            n_components=params["pca"]["n_components"],
            scale=params["pca"]["scale"],
            random_state=seed
        )
        self.classifier = PenalizedClassifier.from_config(config)

    def load(
        self,
        methylation_path: Optional[Union[str, Path]] = None,
        clinical_path: Optional[Union[str, Path]] = None
    ) -> MethylationDataset:
        """Load and align the two input tables."""
        if methylation_path is None:
            methylation_path = self.config.get_data_path("methylation")
        if clinical_path is None:
            clinical_path = self.config.get_data_path("clinical")

        return self.meth_loader.load_with_clinical(
            methylation_path, clinical_path, clinical_loader=self.clinical_loader
        )

    def run(
        self,
        methylation_path: Optional[Union[str, Path]] = None,
        clinical_path: Optional[Union[str, Path]] = None,
        output_dir: Optional[Union[str, Path]] = None,
        n_permutations: Optional[int] = None,
        make_plots: bool = True
    ) -> AnalysisResults:
        """
        Run every stage and export the results.

        Args:
            methylation_path: Methylation matrix (defaults to config)
            clinical_path: Clinical table (defaults to config)
            output_dir: Result directory; replaces config.output_dir when given
            n_permutations: Label shuffles for the permutation diagnostic;
                0 skips it (defaults to config)
            make_plots: Also write diagnostic figures

        Returns:
            AnalysisResults
        """
        if n_permutations is None:
            n_permutations = self.config.analysis_params["n_permutations"]
        if output_dir is not None:
            self.config.output_dir = Path(output_dir)
        tables_dir = self.config.tables_dir

        logger.info("")
        logger.info("[Step 1] Loading data")
        logger.info("-" * 40)
        dataset = self.load(methylation_path, clinical_path)

        logger.info("")
        logger.info("[Step 2] Descriptive statistics")
        logger.info("-" * 40)
        descriptive = self.summarizer.summarize(dataset)

        logger.info("")
        logger.info("[Step 3] Univariate association")
        logger.info("-" * 40)
        association = self.engine.test(dataset)
        permutation = None
        if n_permutations > 0:
            permutation = self.engine.permutation_diagnostic(dataset, n_permutations)

        logger.info("")
        logger.info("[Step 4] Principal component analysis")
        logger.info("-" * 40)
        pca = self.reducer.fit(dataset)

        logger.info("")
        logger.info("[Step 5] Elastic-net classification")
        logger.info("-" * 40)
        split = self.classifier.prepare(dataset)
        model = self.classifier.fit(split)
        evaluation = self.classifier.evaluate(model, split)
        path = self.classifier.regularization_path(
            split,
            self.config.analysis_params["classifier"]["path_Cs"],
            l1_ratio=model.l1_ratio
        )
        corroborated = cross_reference(model, association)

        logger.info("")
        logger.info("[Step 6] Exporting results")
        logger.info("-" * 40)
        writer = ResultWriter(tables_dir)
        written = {}
        written.update(writer.write_descriptive(descriptive))
        written.update(writer.write_association(association))
        if permutation is not None:
            written.update(writer.write_permutation(permutation))
        written.update(writer.write_pca(pca))
        written.update(writer.write_classifier(model, evaluation, path, corroborated))
        logger.info(f"Wrote {len(written)} tables to {tables_dir}")

        results = AnalysisResults(
            dataset=dataset,
            descriptive=descriptive,
            association=association,
            pca=pca,
            model=model,
            evaluation=evaluation,
            regularization_path=path,
            corroborated_sites=corroborated,
            permutation=permutation,
            written=written,
        )

        if make_plots:
            logger.info("")
            logger.info("[Step 7] Diagnostic figures")
            logger.info("-" * 40)
            self.plot(results, self.config.figures_dir)

        return results

    def plot(self, results: AnalysisResults, plots_dir: Path) -> None:
        """Write the diagnostic figures for ``results``."""
        # Imported here so table-only runs never touch matplotlib
        from .visualization import PlotGenerator

        plotter = PlotGenerator(self.config)
        ext = self.config.viz_params.get("format", "pdf")
        dataset = results.dataset
        groups = dataset.labels.map(dataset.group_names)

        plotter.plot_density(dataset, plots_dir / f"beta_density_by_tissue.{ext}")
        plotter.plot_qq(results.association, plots_dir / f"pvalue_qq.{ext}")
        if results.pca.n_components >= 2:
            plotter.plot_pca(results.pca, groups, plots_dir / f"pca_scores.{ext}")
        plotter.plot_scree(results.pca, plots_dir / f"pca_scree.{ext}")

        roc_data = self.classifier.evaluator.get_roc_data(results.evaluation)
        if roc_data is not None:
            plotter.plot_roc_curve(roc_data, plots_dir / f"roc_curve.{ext}")
