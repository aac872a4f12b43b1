"""
Artifact Detection and Removal
==============================

Detects, attenuates and removes artifacts in referenced EEG.

Detectors (independent, combined by OR):
    1. Amplitude: any channel exceeds ±amplitude_threshold at a sample
       (eye blinks, movement).
    2. Muscle: moving RMS of the 30-100 Hz band exceeds a multiple of the
       RMS trace's standard deviation on one of the leading channels.
    3. Flatline: a channel whose full-signal std is below threshold is
       dead. This is a per-channel decision and is kept out of the
       per-sample mask.

Removal:
    Contiguous runs of flagged samples longer than min_run_length are
    multiplied by floor + (1 - floor) * tukey(run_length), then dead
    channels are dropped. Sample count never changes.

Interpolation:
    Dead channels may be replaced by a verbatim copy of the surviving
    channel with the nearest index. This is a placeholder, NOT a spatial
    interpolation: index distance says nothing about electrode distance,
    so the result is biased and only fit to keep the channel layout.

Author: NeuroSync Project Team
License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple
import numpy as np
from scipy import signal

from .config import ArtifactConfig, SamplingLike, resolve_sampling_config
from .errors import InsufficientDataError
from .preprocessing import design_bandpass, validate_signal, zero_phase_filter

logger = logging.getLogger(__name__)


# =============================================================================
# Artifact Report
# =============================================================================

@dataclass
class ArtifactReport:
    """
    Result of artifact detection for one signal.

    Attributes:
        amplitude_mask: Per-sample amplitude artifact flags
        muscle_mask: Per-sample muscle artifact flags
        combined_mask: amplitude_mask | muscle_mask
        dead_channels: Per-channel flatline flags
        artifact_percentage: 100 * count(combined_mask) / n_samples
    """
    amplitude_mask: np.ndarray
    muscle_mask: np.ndarray
    combined_mask: np.ndarray
    dead_channels: np.ndarray
    artifact_percentage: float

    @property
    def n_samples(self) -> int:
        return int(self.combined_mask.shape[0])

    @property
    def n_channels(self) -> int:
        return int(self.dead_channels.shape[0])

    @property
    def n_dead_channels(self) -> int:
        return int(np.count_nonzero(self.dead_channels))

    @property
    def dead_channel_indices(self) -> List[int]:
        return [int(i) for i in np.flatnonzero(self.dead_channels)]

    def to_dict(self) -> Dict[str, Any]:
        """Summary suitable for logs and metadata."""
        return {
            "n_samples": self.n_samples,
            "n_channels": self.n_channels,
            "amplitude_samples": int(np.count_nonzero(self.amplitude_mask)),
            "muscle_samples": int(np.count_nonzero(self.muscle_mask)),
            "artifact_samples": int(np.count_nonzero(self.combined_mask)),
            "artifact_percentage": self.artifact_percentage,
            "dead_channels": self.dead_channel_indices,
        }


# =============================================================================
# Artifact Detection
# =============================================================================

def moving_mean(x: np.ndarray, window: int) -> np.ndarray:
    """
    Centred moving average that shrinks at the edges.

    For an even window the centre sits right of the middle: window // 2
    samples before and window // 2 - 1 after. Near the ends only the
    available samples are averaged.
    """
    n = x.shape[-1]
    before = window // 2
    after = window - before - 1

    csum = np.concatenate([np.zeros(x.shape[:-1] + (1,)), np.cumsum(x, axis=-1)], axis=-1)
    idx = np.arange(n)
    lo = np.maximum(idx - before, 0)
    hi = np.minimum(idx + after, n - 1) + 1

    return (csum[..., hi] - csum[..., lo]) / (hi - lo)


class ArtifactDetector:
    """
    Detects amplitude, muscle and flatline artifacts.

    Thresholds come from ArtifactConfig; the detector keeps no state
    between calls.

    Usage:
        detector = ArtifactDetector(SamplingConfig(sampling_rate=250))
        report = detector.detect(referenced)
        clean = ~report.combined_mask
    """

    def __init__(
        self,
        sampling: SamplingLike,
        config: Optional[ArtifactConfig] = None
    ) -> None:
        """
        Initialize artifact detector.

        Args:
            sampling: Sampling configuration (or plain mapping)
            config: Artifact detection configuration
        """
        self.sampling = resolve_sampling_config(sampling)
        self.config = config or ArtifactConfig()

        fs = self.sampling.sampling_rate
        low, high = self.config.muscle_band
        if high >= self.sampling.nyquist:
            clamped = 0.95 * self.sampling.nyquist
            logger.warning(
                f"Muscle band upper edge {high} Hz is not below Nyquist "
                f"({self.sampling.nyquist} Hz); clamping to {clamped:.1f} Hz"
            )
            high = clamped
        self._muscle_band = (low, high)
        self._muscle_sos = design_bandpass(low, high, fs, self.config.muscle_filter_order)
        self._rms_window = max(1, int(round(self.config.muscle_rms_window_seconds * fs)))

    def detect(self, data: np.ndarray) -> ArtifactReport:
        """
        Detect artifacts in referenced EEG.

        Args:
            data: EEG data, shape (n_channels, n_samples)

        Returns:
            ArtifactReport with per-sample masks and per-channel dead flags

        Raises:
            InsufficientDataError: If fewer than 2 samples are given
        """
        data = validate_signal(data, min_samples=2)
        n_channels, n_samples = data.shape
        self.sampling.for_channels(n_channels)

        amplitude_mask = self.detect_amplitude(data)
        muscle_mask = self.detect_muscle(data)
        dead_channels = self.detect_dead_channels(data)

        combined_mask = amplitude_mask | muscle_mask
        artifact_percentage = float(np.count_nonzero(combined_mask)) / n_samples * 100.0

        report = ArtifactReport(
            amplitude_mask=amplitude_mask,
            muscle_mask=muscle_mask,
            combined_mask=combined_mask,
            dead_channels=dead_channels,
            artifact_percentage=artifact_percentage,
        )

        logger.info(
            f"Artifacts: {artifact_percentage:.1f}% of samples "
            f"(amplitude={np.count_nonzero(amplitude_mask)}, "
            f"muscle={np.count_nonzero(muscle_mask)}), "
            f"dead channels={report.dead_channel_indices}"
        )
        return report

    def detect_amplitude(self, data: np.ndarray) -> np.ndarray:
        """Flag samples where any channel exceeds the amplitude threshold."""
        return np.any(np.abs(data) > self.config.amplitude_threshold_uv, axis=0)

    def detect_muscle(self, data: np.ndarray) -> np.ndarray:
        """
        Flag samples with excessive muscle-band RMS.

        Examines the first muscle_max_channels channels (frontal sites in
        a standard montage).
        """
        n_channels, n_samples = data.shape
        n_examined = min(self.config.muscle_max_channels, n_channels)

        filtered = zero_phase_filter(self._muscle_sos, data[:n_examined])
        rms = np.sqrt(np.maximum(moving_mean(filtered ** 2, self._rms_window), 0.0))

        threshold = self.config.muscle_rms_std_multiplier * np.std(rms, axis=1, keepdims=True)
        return np.any(rms > threshold, axis=0)

    def detect_dead_channels(self, data: np.ndarray) -> np.ndarray:
        """Flag channels whose standard deviation is below the flatline threshold."""
        return np.std(data, axis=1) < self.config.flatline_threshold_uv


def detect_artifacts(
    data: np.ndarray,
    config: SamplingLike,
    artifact_config: Optional[ArtifactConfig] = None
) -> ArtifactReport:
    """
    Detect amplitude, muscle and flatline artifacts.

    Args:
        data: Referenced EEG, shape (n_channels, n_samples)
        config: Sampling configuration or mapping with ``samplingRate``
        artifact_config: Optional threshold overrides

    Returns:
        ArtifactReport
    """
    return ArtifactDetector(config, artifact_config).detect(data)


# =============================================================================
# Artifact Removal
# =============================================================================

def iter_artifact_runs(mask: np.ndarray) -> Iterator[Tuple[int, int]]:
    """
    Yield maximal runs of consecutive True samples.

    Args:
        mask: 1D boolean array

    Yields:
        (start, stop) pairs, stop exclusive, in increasing order
    """
    start: Optional[int] = None
    last = -2

    for idx in np.flatnonzero(mask):
        idx = int(idx)
        if start is None:
            start = idx
        elif idx != last + 1:
            yield start, last + 1
            start = idx
        last = idx

    if start is not None:
        yield start, last + 1


class ArtifactRemover:
    """
    Attenuates long artifact runs and drops dead channels.

    Example:
        >>> remover = ArtifactRemover()
        >>> cleaned = remover.apply(referenced, report)
        >>> cleaned.shape[0] == referenced.shape[0] - report.n_dead_channels
        True
    """

    def __init__(self, config: Optional[ArtifactConfig] = None) -> None:
        self.config = config or ArtifactConfig()

    def taper(self, length: int) -> np.ndarray:
        """Multiplier applied across a run of the given length."""
        window = signal.windows.tukey(length, alpha=self.config.taper_fraction)
        return self.config.taper_floor + (1.0 - self.config.taper_floor) * window

    def apply(self, data: np.ndarray, report: ArtifactReport) -> np.ndarray:
        """
        Remove artifacts described by a report.

        Args:
            data: Referenced EEG, shape (n_channels, n_samples)
            report: Artifact report for the same signal

        Returns:
            Cleaned EEG, shape (n_channels - n_dead, n_samples)

        Raises:
            ValueError: If report and signal shapes disagree
        """
        data = validate_signal(data)
        n_channels, n_samples = data.shape

        if report.n_samples != n_samples:
            raise ValueError(
                f"Artifact mask covers {report.n_samples} samples, signal has {n_samples}"
            )
        if report.n_channels != n_channels:
            raise ValueError(
                f"Dead channel mask covers {report.n_channels} channels, signal has {n_channels}"
            )

        n_tapered = 0
        for start, stop in iter_artifact_runs(report.combined_mask):
            if stop - start <= self.config.min_run_length:
                continue
            data[:, start:stop] *= self.taper(stop - start)
            n_tapered += 1

        if report.n_dead_channels:
            data = data[~report.dead_channels]

        logger.info(
            f"Tapered {n_tapered} artifact runs, dropped {report.n_dead_channels} dead channels"
        )
        return data


def remove_artifacts(
    data: np.ndarray,
    report: ArtifactReport,
    artifact_config: Optional[ArtifactConfig] = None
) -> np.ndarray:
    """
    Taper long artifact runs and drop dead channels.

    Args:
        data: Referenced EEG, shape (n_channels, n_samples)
        report: Artifact report from detect_artifacts
        artifact_config: Optional taper overrides

    Returns:
        Cleaned EEG; channel count may shrink, sample count never does
    """
    return ArtifactRemover(artifact_config).apply(data, report)


# =============================================================================
# Channel Interpolation
# =============================================================================

def interpolate_dead_channels(data: np.ndarray, dead_mask: np.ndarray) -> np.ndarray:
    """
    Fill dead channels with a copy of the nearest surviving channel.

    "Nearest" is by channel index, ties going to the lower index. This is
    an approximate placeholder that duplicates data; it does not estimate
    the dead electrode from spatial neighbours.

    Args:
        data: Either only the surviving channels, shape
            (n_channels - n_dead, n_samples), as returned by
            remove_artifacts, or all channels, shape (n_channels, n_samples)
        dead_mask: Boolean flags over the original channels

    Returns:
        Signal of shape (n_channels, n_samples) with dead rows replaced

    Raises:
        InsufficientDataError: If every channel is dead
        ValueError: If the signal matches neither layout
    """
    data = validate_signal(data)
    dead_mask = np.asarray(dead_mask, dtype=bool)
    n_total = dead_mask.shape[0]

    good_idx = np.flatnonzero(~dead_mask)
    bad_idx = np.flatnonzero(dead_mask)

    if good_idx.size == 0:
        raise InsufficientDataError("All channels are dead; nothing to interpolate from")

    if data.shape[0] == good_idx.size:
        full = np.zeros((n_total, data.shape[1]))
        full[good_idx] = data
    elif data.shape[0] == n_total:
        full = data
    else:
        raise ValueError(
            f"Signal has {data.shape[0]} channels; expected {good_idx.size} surviving "
            f"or {n_total} total"
        )

    if bad_idx.size == 0:
        return full

    logger.warning(
        f"Replacing dead channels {bad_idx.tolist()} with nearest-index copies; "
        f"the result is approximate and biased toward the copied channels"
    )

    for bad in bad_idx:
        # argmin returns the first minimum, i.e. the lower index on ties
        nearest = good_idx[np.argmin(np.abs(good_idx - bad))]
        full[bad] = full[nearest]

    return full
