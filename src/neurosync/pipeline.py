"""
EEG Pipeline Module
====================

Orchestrates the EEG core on one recording at a time.

Pipeline Flow:

    Raw EEG → FilterCascade → CAR → ArtifactDetector → ArtifactRemover
                                                            ↓
        Feature Matrix ← FeatureExtractor ← (ChannelInterpolator)

Each stage is a pure function of its inputs; the pipeline object only
holds configuration and the designed filters, so one instance can process
any number of independent recordings.

Dead channel policy:
    Dead channels are dropped by the artifact remover. They are filled
    back in by nearest-index copy only when 0 < n_dead < n_channels / 2.
    With half or more channels dead the recording is considered too
    compromised: interpolation is skipped, the cleaned signal keeps only
    the surviving channels and PreprocessingInfo says why. A recording in
    which every channel is dead raises InsufficientDataError.

Example:
    >>> pipeline = create_pipeline_from_config("configs/pipeline.yaml")
    >>> result = pipeline.run(raw)
    >>> result.features.shape, len(result.feature_names)

Author: NeuroSync Project Team
License: MIT
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple
import yaml
import numpy as np

from .artifacts import ArtifactDetector, ArtifactRemover, ArtifactReport, interpolate_dead_channels
from .config import (
    ArtifactConfig,
    FeatureConfig,
    FilterConfig,
    SamplingConfig,
    SamplingLike,
    resolve_sampling_config,
)
from .errors import ConfigurationError, InsufficientDataError
from .features import FeatureExtractor
from .preprocessing import FilterCascade, reference, validate_signal

logger = logging.getLogger(__name__)


# =============================================================================
# Preprocessing
# =============================================================================

@dataclass
class PreprocessingInfo:
    """
    Bookkeeping produced alongside the cleaned signal.

    Attributes:
        n_channels_original: Channels in the raw recording
        n_samples_original: Samples in the raw recording
        n_channels_clean: Channels in the cleaned signal
        n_samples_clean: Samples in the cleaned signal
        artifact_percentage: Percentage of samples flagged as artifact
        dead_channels: Indices of channels flagged dead
        interpolated: Whether dead channels were filled back in
        interpolation_skipped: Whether dead channels were left out because
            too many of them were dead
        skip_reason: Human-readable reason when interpolation was skipped
    """
    n_channels_original: int
    n_samples_original: int
    n_channels_clean: int = 0
    n_samples_clean: int = 0
    artifact_percentage: float = 0.0
    dead_channels: List[int] = field(default_factory=list)
    interpolated: bool = False
    interpolation_skipped: bool = False
    skip_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Preprocessor:
    """
    Filter, re-reference, detect and remove artifacts, interpolate.

    Architecture:
        ┌──────────────────────────────────────────────────────────────┐
        │                        Preprocessor                          │
        │  ┌──────────┐   ┌──────────┐   ┌──────────┐   ┌──────────┐  │
        │  │ Filter   │──▶│Reference │──▶│ Artifact │──▶│ Artifact │  │
        │  │ Cascade  │   │  (CAR)   │   │ Detector │   │ Remover  │  │
        │  └──────────┘   └──────────┘   └──────────┘   └──────────┘  │
        │                                                     │        │
        │                                                     ▼        │
        │                                              ┌────────────┐  │
        │                                              │Interpolate │  │
        │                                              │(if < 50%)  │  │
        │                                              └────────────┘  │
        └──────────────────────────────────────────────────────────────┘

    Example:
        >>> preprocessor = Preprocessor(SamplingConfig(sampling_rate=250))
        >>> cleaned, report, info = preprocessor.process(raw)
    """

    def __init__(
        self,
        sampling: SamplingLike,
        filters: Optional[FilterConfig] = None,
        artifacts: Optional[ArtifactConfig] = None,
        interpolate: bool = True
    ) -> None:
        """
        Initialize preprocessor.

        Args:
            sampling: Sampling configuration (or plain mapping)
            filters: Filter cascade configuration
            artifacts: Artifact detection/removal configuration
            interpolate: Whether to fill dead channels back in

        Raises:
            ConfigurationError: If the sampling rate cannot support the filters
        """
        self.sampling = resolve_sampling_config(sampling)
        self.interpolate = interpolate

        self._cascade = FilterCascade(self.sampling, filters)
        self._detector = ArtifactDetector(self.sampling, artifacts)
        self._remover = ArtifactRemover(artifacts)

        logger.info(
            f"Initialized Preprocessor: fs={self.sampling.sampling_rate} Hz, "
            f"powerline={self.sampling.powerline_frequency} Hz, interpolate={interpolate}"
        )

    def process(self, data: np.ndarray) -> Tuple[np.ndarray, ArtifactReport, PreprocessingInfo]:
        """
        Clean a raw recording.

        Args:
            data: Raw EEG, shape (n_channels, n_samples)

        Returns:
            Tuple of (cleaned signal, artifact report, preprocessing info)

        Raises:
            InsufficientDataError: If every channel is dead, which includes
                any single-channel recording (CAR leaves it at zero)
        """
        data = validate_signal(data)
        n_channels, n_samples = data.shape
        info = PreprocessingInfo(n_channels_original=n_channels, n_samples_original=n_samples)

        logger.info(f"Preprocessing {n_channels} channels, {n_samples} samples")

        filtered = self._cascade.apply(data)
        referenced = reference(filtered)
        report = self._detector.detect(referenced)
        if report.n_dead_channels == n_channels:
            raise InsufficientDataError(
                f"All {n_channels} channels are dead after referencing; "
                f"nothing survives preprocessing"
            )
        cleaned = self._remover.apply(referenced, report)

        info.artifact_percentage = report.artifact_percentage
        info.dead_channels = report.dead_channel_indices

        n_dead = report.n_dead_channels
        if n_dead > 0:
            if not self.interpolate:
                info.interpolation_skipped = True
                info.skip_reason = "interpolation disabled"
            elif n_dead < n_channels / 2:
                logger.info(f"Interpolating {n_dead} bad channels")
                cleaned = interpolate_dead_channels(cleaned, report.dead_channels)
                info.interpolated = True
            else:
                info.interpolation_skipped = True
                info.skip_reason = (
                    f"{n_dead} of {n_channels} channels dead; interpolation needs fewer "
                    f"than half dead"
                )
            if info.interpolation_skipped:
                logger.warning(
                    f"Dead channels {info.dead_channels} dropped without interpolation: "
                    f"{info.skip_reason}"
                )

        info.n_channels_clean, info.n_samples_clean = cleaned.shape

        logger.info(
            f"Preprocessing complete. Artifacts: {report.artifact_percentage:.1f}%, "
            f"channels {n_channels} -> {info.n_channels_clean}"
        )
        return cleaned, report, info


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class PipelineConfig:
    """
    Master configuration for the EEG pipeline.

    Attributes:
        sampling: Sampling configuration
        filters: Filter cascade configuration
        artifacts: Artifact detection/removal configuration
        features: Feature extraction configuration
        interpolate_dead_channels: Whether to fill dead channels back in
    """
    sampling: SamplingConfig = field(default_factory=lambda: SamplingConfig(sampling_rate=250))
    filters: FilterConfig = field(default_factory=FilterConfig)
    artifacts: ArtifactConfig = field(default_factory=ArtifactConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    interpolate_dead_channels: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """
        Build configuration from nested dictionaries.

        Args:
            data: Mapping with optional ``sampling``, ``filters``,
                ``artifacts`` and ``features`` sections

        Returns:
            PipelineConfig instance
        """
        data = dict(data or {})
        unknown = set(data) - {"sampling", "filters", "artifacts", "features",
                               "interpolate_dead_channels"}
        if unknown:
            raise ConfigurationError(f"Unknown pipeline configuration sections: {sorted(unknown)}")

        artifact_data = dict(data.get("artifacts") or {})
        if "muscle_band" in artifact_data:
            artifact_data["muscle_band"] = tuple(artifact_data["muscle_band"])

        feature_data = dict(data.get("features") or {})
        if "bands" in feature_data:
            feature_data["bands"] = {
                name: tuple(edges) for name, edges in feature_data["bands"].items()
            }

        try:
            return cls(
                sampling=SamplingConfig.from_mapping(data.get("sampling") or {"samplingRate": 250}),
                filters=FilterConfig(**(data.get("filters") or {})),
                artifacts=ArtifactConfig(**artifact_data),
                features=FeatureConfig(**feature_data),
                interpolate_dead_channels=bool(data.get("interpolate_dead_channels", True)),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid pipeline configuration: {e}") from e

    @classmethod
    def from_yaml(cls, path: str) -> "PipelineConfig":
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            PipelineConfig instance
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain nested dictionaries."""
        artifacts = asdict(self.artifacts)
        artifacts["muscle_band"] = list(self.artifacts.muscle_band)

        features = asdict(self.features)
        features["bands"] = {name: list(edges) for name, edges in self.features.bands.items()}

        return {
            "sampling": self.sampling.to_dict(),
            "filters": asdict(self.filters),
            "artifacts": artifacts,
            "features": features,
            "interpolate_dead_channels": self.interpolate_dead_channels,
        }

    def to_yaml(self, path: str) -> None:
        """
        Save configuration to YAML file.

        Args:
            path: Path to save configuration
        """
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {path}")


# =============================================================================
# Pipeline
# =============================================================================

@dataclass
class PipelineResult:
    """
    Output of one pipeline run.

    Attributes:
        cleaned: Cleaned signal, shape (n_channels_clean, n_samples)
        report: Artifact report of the referenced signal
        info: Preprocessing bookkeeping
        features: Feature matrix, shape (n_windows, n_channels_clean * 15)
        feature_names: Column names of the feature matrix
        timings_ms: Wall-clock duration of each stage
    """
    cleaned: np.ndarray
    report: ArtifactReport
    info: PreprocessingInfo
    features: np.ndarray
    feature_names: List[str]
    timings_ms: Dict[str, float] = field(default_factory=dict)

    @property
    def n_windows(self) -> int:
        return int(self.features.shape[0])


class EEGPipeline:
    """
    Complete preprocessing and feature extraction for single recordings.

    Example:
        >>> pipeline = EEGPipeline(PipelineConfig())
        >>> result = pipeline.run(raw)
        >>> result.info.artifact_percentage
    """

    def __init__(self, config: PipelineConfig) -> None:
        """
        Initialize pipeline components.

        Args:
            config: Pipeline configuration
        """
        self.config = config

        self.preprocessor = Preprocessor(
            config.sampling,
            filters=config.filters,
            artifacts=config.artifacts,
            interpolate=config.interpolate_dead_channels,
        )
        # Cleaned signals may have fewer channels than the raw recording
        self.feature_extractor = FeatureExtractor(
            replace(config.sampling, channel_count=None), config.features
        )

    def run(self, data: np.ndarray) -> PipelineResult:
        """
        Clean a recording and extract its feature matrix.

        Args:
            data: Raw EEG, shape (n_channels, n_samples)

        Returns:
            PipelineResult
        """
        t_start = time.perf_counter()
        cleaned, report, info = self.preprocessor.process(data)
        t_pre = time.perf_counter()

        features = self.feature_extractor.transform(cleaned)
        t_feat = time.perf_counter()

        timings = {
            "preprocessing_ms": (t_pre - t_start) * 1000,
            "feature_ms": (t_feat - t_pre) * 1000,
            "total_ms": (t_feat - t_start) * 1000,
        }

        logger.info(
            f"Pipeline finished: {features.shape[0]} windows x {features.shape[1]} features "
            f"in {timings['total_ms']:.1f}ms"
        )

        return PipelineResult(
            cleaned=cleaned,
            report=report,
            info=info,
            features=features,
            feature_names=self.feature_extractor.feature_names,
            timings_ms=timings,
        )


# =============================================================================
# Convenience Factory Functions
# =============================================================================

def create_default_pipeline(sampling_rate: int = 250, powerline_frequency: int = 50) -> EEGPipeline:
    """
    Create a pipeline with default configuration.

    Returns:
        EEGPipeline with default thresholds
    """
    config = PipelineConfig(
        sampling=SamplingConfig(sampling_rate=sampling_rate, powerline_frequency=powerline_frequency)
    )
    return EEGPipeline(config)


def create_pipeline_from_config(config_path: str) -> EEGPipeline:
    """
    Create a pipeline from configuration file.

    Args:
        config_path: Path to YAML configuration

    Returns:
        Configured EEGPipeline
    """
    config = PipelineConfig.from_yaml(config_path)
    return EEGPipeline(config)
