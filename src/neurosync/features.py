"""
EEG Feature Extraction Module
==============================

Windows a cleaned EEG signal and computes a fixed 15-feature vector per
channel and window, for use by downstream classifiers.

Features per channel (in order):
     1. Mean
     2. Variance
     3. Skewness
     4. Kurtosis
   5-7. Hjorth activity, mobility, complexity
     8. Total spectral power
  9-13. Band power: delta, theta, alpha, beta, gamma
    14. Spectral edge frequency (95%)
    15. Power-weighted mean frequency

Mathematical Background:

    Hjorth Parameters (x' = first difference, x'' = second difference):
        activity   = var(x)
        mobility   = sqrt(var(x') / var(x))
        complexity = mobility(x') / mobility(x)
                   = sqrt(var(x'') / var(x')) / mobility

    Welch PSD:
        P_welch = (1/K) Σ_k |FFT(x_k * w)|^2

        Where w is a Hann window and K the number of segments. Segment
        parameters are fixed per extractor so every window and channel
        is estimated identically.

    Band Power:
        P_band = Σ PSD(f) for f_low <= f <= f_high

    Spectral Edge Frequency:
        SEF = min{ f : Σ_{f' <= f} PSD(f') >= 0.95 * Σ PSD }

Zero-power and zero-variance windows never raise: every ratio whose
denominator vanishes is reported as 0. A constant window reports zero
variance, skewness, kurtosis, Hjorth parameters and spectral power.

Author: NeuroSync Project Team
License: MIT
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Optional, Tuple
import numpy as np
from scipy import signal
from scipy.stats import kurtosis, skew

from .config import FeatureConfig, SamplingLike, resolve_sampling_config
from .errors import ConfigurationError, InsufficientDataError
from .preprocessing import validate_signal

logger = logging.getLogger(__name__)


FEATURE_BASE_NAMES: Tuple[str, ...] = (
    'Mean', 'Variance', 'Skewness', 'Kurtosis',
    'HjorthActivity', 'HjorthMobility', 'HjorthComplexity',
    'TotalPower', 'Delta', 'Theta', 'Alpha', 'Beta',
    'Gamma', 'SEF95', 'MeanFreq',
)

N_FEATURES_PER_CHANNEL = len(FEATURE_BASE_NAMES)


# =============================================================================
# Time-Domain Features
# =============================================================================

def _is_constant(x: np.ndarray) -> bool:
    """True when every sample of x is identical."""
    return bool(np.ptp(x) == 0)


def hjorth_parameters(x: np.ndarray) -> Tuple[float, float, float]:
    """
    Compute Hjorth activity, mobility and complexity of a 1D signal.

    Args:
        x: 1D signal

    Returns:
        Tuple of (activity, mobility, complexity); mobility and complexity
        are 0 when their denominators vanish

    Example:
        >>> hjorth_parameters(np.array([1.0, 2.0, 3.0, 4.0, 5.0]))
        (2.0, 0.0, 0.0)
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size < 2:
        raise InsufficientDataError(f"Hjorth parameters need at least 2 samples, got {x.size}")

    if _is_constant(x):
        return 0.0, 0.0, 0.0

    activity = float(np.var(x))

    diff1 = np.diff(x)
    var_diff1 = float(np.var(diff1))

    if activity > 0:
        mobility = float(np.sqrt(var_diff1 / activity))
    else:
        mobility = 0.0

    if mobility > 0 and var_diff1 > 0:
        diff2 = np.diff(diff1)
        complexity = float(np.sqrt(np.var(diff2) / var_diff1) / mobility)
    else:
        complexity = 0.0

    return activity, mobility, complexity


def _moments(x: np.ndarray) -> Tuple[float, float, float, float]:
    """Mean, variance, skewness and (non-excess) kurtosis of one window."""
    mean = float(np.mean(x))
    if _is_constant(x):
        # np.var of a constant non-zero window is rounding noise, not 0
        return mean, 0.0, 0.0, 0.0

    variance = float(np.var(x))
    skewness = float(skew(x))
    kurt = float(kurtosis(x, fisher=False))
    return mean, variance, skewness, kurt


# =============================================================================
# Windowing
# =============================================================================

def iter_windows(n_samples: int, window: int, step: int) -> Iterator[Tuple[int, int]]:
    """
    Yield (start, stop) bounds of full windows in increasing order.

    The partial tail that does not fill a window is dropped.
    """
    for start in range(0, n_samples - window + 1, step):
        yield start, start + window


def count_windows(n_samples: int, window: int, step: int) -> int:
    """Number of full windows: floor((n - window) / step) + 1, or 0."""
    if n_samples < window:
        return 0
    return (n_samples - window) // step + 1


# =============================================================================
# Feature Extractor
# =============================================================================

class FeatureExtractor:
    """
    Windowed time-domain, Hjorth and spectral feature extraction.

    Produces a matrix of shape (n_windows, n_channels * 15) and the matching
    column names ``Ch{index:02d}_{feature}`` (1-based channel index).

    Windows may be processed on a thread pool (FeatureConfig.n_workers);
    each window is computed independently and results are collected in
    window order, so the output does not depend on scheduling.

    Example:
        >>> extractor = FeatureExtractor(SamplingConfig(sampling_rate=250))
        >>> features = extractor.transform(cleaned)
        >>> features.shape[1] == len(extractor.feature_names)
        True
    """

    def __init__(
        self,
        sampling: SamplingLike,
        config: Optional[FeatureConfig] = None
    ) -> None:
        """
        Initialize feature extractor.

        Args:
            sampling: Sampling configuration (or plain mapping)
            config: Feature extraction configuration
        """
        self.sampling = resolve_sampling_config(sampling)
        self.config = config or FeatureConfig()

        fs = self.sampling.sampling_rate
        self._window = self.config.window_samples(fs)
        self._step = self.config.step_samples(fs)
        if self._window < 2 or self._step < 1:
            raise ConfigurationError(
                f"Window of {self._window} samples with step {self._step} is invalid "
                f"at {fs} Hz"
            )

        # Welch parameters, fixed for every window and channel of a run
        self._nperseg = min(self.config.welch_nperseg or 256, self._window)
        if self.config.welch_noverlap is None:
            self._noverlap = self._nperseg // 2
        else:
            self._noverlap = min(self.config.welch_noverlap, self._nperseg - 1)

        self._band_names = list(self.config.bands.keys())
        self._feature_names: List[str] = []

        logger.debug(
            f"FeatureExtractor: window={self._window}, step={self._step}, "
            f"nperseg={self._nperseg}, noverlap={self._noverlap}"
        )

    @property
    def window_samples(self) -> int:
        return self._window

    @property
    def step_samples(self) -> int:
        return self._step

    @property
    def n_features_per_channel(self) -> int:
        """Number of features per channel (15 with the default bands)."""
        return 10 + len(self._band_names)

    @property
    def base_names(self) -> List[str]:
        """Per-channel feature names without the channel prefix."""
        band_names = [name.capitalize() for name in self._band_names]
        return list(FEATURE_BASE_NAMES[:8]) + band_names + list(FEATURE_BASE_NAMES[13:])

    @property
    def feature_names(self) -> List[str]:
        """Column names of the last transformed signal."""
        return list(self._feature_names)

    def build_feature_names(self, n_channels: int) -> List[str]:
        """Column names for a signal with n_channels channels."""
        base_names = self.base_names
        return [
            f"Ch{ch + 1:02d}_{base}"
            for ch in range(n_channels)
            for base in base_names
        ]

    def transform(self, data: np.ndarray) -> np.ndarray:
        """
        Extract features from every full window of a signal.

        Args:
            data: Cleaned EEG, shape (n_channels, n_samples)

        Returns:
            Feature matrix, shape (n_windows, n_channels * n_features_per_channel)

        Raises:
            InsufficientDataError: If the signal is shorter than one window
        """
        data = validate_signal(data)
        n_channels, n_samples = data.shape
        self.sampling.for_channels(n_channels)

        if n_samples < self._window:
            raise InsufficientDataError(
                f"Signal has {n_samples} samples, one feature window needs {self._window} "
                f"({self.config.window_seconds}s at {self.sampling.sampling_rate} Hz)"
            )

        bounds = list(iter_windows(n_samples, self._window, self._step))
        logger.info(f"Extracting features from {len(bounds)} windows")

        if self.config.n_workers > 1:
            with ThreadPoolExecutor(max_workers=self.config.n_workers) as pool:
                rows = list(pool.map(lambda b: self._extract_window(data[:, b[0]:b[1]]), bounds))
        else:
            rows = [self._extract_window(data[:, start:stop]) for start, stop in bounds]

        features = np.vstack(rows)
        if len(self._feature_names) != n_channels * self.n_features_per_channel:
            self._feature_names = self.build_feature_names(n_channels)

        logger.info(f"Extracted {features.shape[1]} features per window")
        return features

    def _extract_window(self, window: np.ndarray) -> np.ndarray:
        """Feature vector of one window, channels concatenated in order."""
        freqs, psd = signal.welch(
            window,
            fs=self.sampling.sampling_rate,
            window=self.config.welch_window,
            nperseg=self._nperseg,
            noverlap=self._noverlap,
            axis=1
        )

        return np.concatenate([
            self._extract_channel(window[ch], freqs, psd[ch])
            for ch in range(window.shape[0])
        ])

    def _extract_channel(
        self,
        x: np.ndarray,
        freqs: np.ndarray,
        psd: np.ndarray
    ) -> np.ndarray:
        """Compute the feature vector of a single channel window."""
        features = np.zeros(self.n_features_per_channel)

        features[0:4] = _moments(x)
        features[4:7] = hjorth_parameters(x)

        if _is_constant(x):
            psd = np.zeros_like(psd)

        total_power = float(np.sum(psd))
        features[7] = total_power

        for band_idx, (f_low, f_high) in enumerate(self.config.bands.values()):
            band_mask = (freqs >= f_low) & (freqs <= f_high)
            features[8 + band_idx] = float(np.sum(psd[band_mask]))

        offset = 8 + len(self._band_names)
        if total_power > 0:
            cum_power = np.cumsum(psd)
            edge_idx = int(np.argmax(cum_power >= self.config.spectral_edge * total_power))
            features[offset] = freqs[edge_idx]
            features[offset + 1] = float(np.sum(freqs * psd) / total_power)
        else:
            features[offset] = 0.0
            features[offset + 1] = 0.0

        return features


def extract_features(
    data: np.ndarray,
    config: SamplingLike,
    feature_config: Optional[FeatureConfig] = None
) -> Tuple[np.ndarray, List[str]]:
    """
    Window a cleaned signal and compute its feature matrix.

    Args:
        data: Cleaned EEG, shape (n_channels, n_samples)
        config: Sampling configuration or mapping with ``samplingRate``
        feature_config: Optional window/Welch overrides

    Returns:
        Tuple of (feature matrix, feature names)

    Raises:
        InsufficientDataError: If the signal is shorter than one window
    """
    extractor = FeatureExtractor(config, feature_config)
    features = extractor.transform(data)
    return features, extractor.feature_names
