"""
NeuroSync EEG Core
==================

Deterministic preprocessing and feature extraction for multi-channel EEG.
Turns a raw (channel x sample) recording into a cleaned signal and a
fixed-size feature matrix for downstream classification.

Pipeline Overview:

    Raw EEG → Filters → CAR → Artifacts → Interpolation → Features

    1. Filters: DC removal, 1-45 Hz zero-phase bandpass, 50/60 Hz notch
    2. CAR: common average reference
    3. Artifacts: amplitude, muscle-band RMS and flatline detection,
       tapered attenuation of long artifact runs, dead channel removal
    4. Interpolation: nearest-index copy for a minority of dead channels
    5. Features: 15 per channel per 2-second window (statistics, Hjorth,
       Welch band powers, spectral edge, mean frequency)

Key Functions:
    - filter_cascade, reference, detect_artifacts, remove_artifacts,
      interpolate_dead_channels, extract_features

Key Classes:
    - EEGPipeline: Complete run on one recording
    - Preprocessor: Filtering through interpolation
    - FeatureExtractor: Windowed feature matrix

Quick Start:
    >>> from neurosync import filter_cascade, reference, extract_features
    >>>
    >>> config = {"samplingRate": 250, "powerlineFrequency": 50}
    >>> filtered = filter_cascade(raw, config)
    >>> features, names = extract_features(reference(filtered), config)

Author: NeuroSync Project Team
License: MIT
"""

# Errors
from .errors import (
    NeuroSyncError,
    ConfigurationError,
    InsufficientDataError,
    DegenerateSignalError,
)

# Configuration
from .config import (
    FREQUENCY_BANDS,
    SamplingConfig,
    FilterConfig,
    ArtifactConfig,
    FeatureConfig,
    resolve_sampling_config,
)

# Preprocessing module
from .preprocessing import (
    FilterCascade,
    filter_cascade,
    remove_dc_offset,
    reference,
    validate_signal,
)

# Artifact module
from .artifacts import (
    ArtifactReport,
    ArtifactDetector,
    ArtifactRemover,
    detect_artifacts,
    iter_artifact_runs,
    remove_artifacts,
    interpolate_dead_channels,
)

# Feature extraction module
from .features import (
    FEATURE_BASE_NAMES,
    FeatureExtractor,
    extract_features,
    hjorth_parameters,
    iter_windows,
)

# Pipeline module
from .pipeline import (
    PipelineConfig,
    PipelineResult,
    PreprocessingInfo,
    Preprocessor,
    EEGPipeline,
    create_default_pipeline,
    create_pipeline_from_config,
)

# Version
__version__ = "0.1.0"

# Public API
__all__ = [
    # Errors
    "NeuroSyncError",
    "ConfigurationError",
    "InsufficientDataError",
    "DegenerateSignalError",
    # Configuration
    "FREQUENCY_BANDS",
    "SamplingConfig",
    "FilterConfig",
    "ArtifactConfig",
    "FeatureConfig",
    "resolve_sampling_config",
    # Preprocessing
    "FilterCascade",
    "filter_cascade",
    "remove_dc_offset",
    "reference",
    "validate_signal",
    # Artifacts
    "ArtifactReport",
    "ArtifactDetector",
    "ArtifactRemover",
    "detect_artifacts",
    "iter_artifact_runs",
    "remove_artifacts",
    "interpolate_dead_channels",
    # Features
    "FEATURE_BASE_NAMES",
    "FeatureExtractor",
    "extract_features",
    "hjorth_parameters",
    "iter_windows",
    # Pipeline
    "PipelineConfig",
    "PipelineResult",
    "PreprocessingInfo",
    "Preprocessor",
    "EEGPipeline",
    "create_default_pipeline",
    "create_pipeline_from_config",
]
