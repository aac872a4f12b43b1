"""
Configuration Data Classes
==========================

Sampling, filtering, artifact and feature settings for the EEG core.

Every threshold used by the pipeline lives here as a named default so it
can be overridden for a particular dataset. The artifact constants
(amplitude threshold, muscle RMS multiplier, taper floor) are empirical
and dataset-specific; treat the defaults as starting points.

Sampling parameters may also be given as a plain mapping:

    >>> cfg = SamplingConfig.from_mapping({"samplingRate": 250, "powerlineFrequency": 60})
    >>> cfg.nyquist
    125.0

Author: NeuroSync Project Team
License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .errors import ConfigurationError


# EEG frequency bands (Hz), inclusive on both edges
FREQUENCY_BANDS: Dict[str, Tuple[float, float]] = {
    'delta': (1.0, 4.0),
    'theta': (4.0, 8.0),
    'alpha': (8.0, 13.0),
    'beta': (13.0, 30.0),
    'gamma': (30.0, 45.0),
}

POWERLINE_FREQUENCIES = (50, 60)

# Mapping keys accepted by SamplingConfig.from_mapping
_SAMPLING_KEYS = {
    'samplingRate': 'sampling_rate',
    'sampling_rate': 'sampling_rate',
    'powerlineFrequency': 'powerline_frequency',
    'powerline_frequency': 'powerline_frequency',
    'channelCount': 'channel_count',
    'channel_count': 'channel_count',
}


@dataclass(frozen=True)
class SamplingConfig:
    """
    Sampling parameters shared by every stage of a pipeline run.

    Attributes:
        sampling_rate: Signal sampling rate in Hz
        powerline_frequency: Mains frequency to notch out (50 or 60 Hz)
        channel_count: Number of channels (None = derive from the signal)
    """
    sampling_rate: int
    powerline_frequency: int = 50
    channel_count: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate sampling parameters."""
        if isinstance(self.sampling_rate, bool) or not isinstance(self.sampling_rate, (int, float)):
            raise ConfigurationError(f"sampling_rate must be a number, got {self.sampling_rate!r}")
        if self.sampling_rate <= 0:
            raise ConfigurationError(f"sampling_rate must be positive, got {self.sampling_rate}")
        if self.powerline_frequency not in POWERLINE_FREQUENCIES:
            raise ConfigurationError(
                f"powerline_frequency must be 50 or 60 Hz, got {self.powerline_frequency}"
            )
        if self.channel_count is not None and self.channel_count < 1:
            raise ConfigurationError(f"channel_count must be >= 1, got {self.channel_count}")

    @property
    def nyquist(self) -> float:
        """Nyquist frequency in Hz."""
        return self.sampling_rate / 2.0

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'SamplingConfig':
        """
        Build configuration from a plain mapping.

        Recognized keys are ``samplingRate`` (required), ``powerlineFrequency``
        and ``channelCount``; snake_case spellings are accepted too.

        Raises:
            ConfigurationError: If samplingRate is missing or a key is unknown
        """
        kwargs: Dict[str, Any] = {}
        for key, value in mapping.items():
            if key not in _SAMPLING_KEYS:
                raise ConfigurationError(f"Unknown sampling configuration key: {key!r}")
            kwargs[_SAMPLING_KEYS[key]] = value

        if 'sampling_rate' not in kwargs:
            raise ConfigurationError("Sampling configuration requires 'samplingRate'")

        return cls(**kwargs)

    def for_channels(self, n_channels: int) -> 'SamplingConfig':
        """
        Return configuration bound to a signal's channel count.

        Raises:
            ConfigurationError: If an explicit channel_count disagrees
        """
        if self.channel_count is None:
            return replace(self, channel_count=n_channels)
        if self.channel_count != n_channels:
            raise ConfigurationError(
                f"Configured for {self.channel_count} channels, signal has {n_channels}"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain mapping using the recognized keys."""
        data: Dict[str, Any] = {
            'samplingRate': self.sampling_rate,
            'powerlineFrequency': self.powerline_frequency,
        }
        if self.channel_count is not None:
            data['channelCount'] = self.channel_count
        return data


SamplingLike = Union[SamplingConfig, Mapping[str, Any]]


def resolve_sampling_config(config: SamplingLike, n_channels: Optional[int] = None) -> SamplingConfig:
    """
    Coerce a SamplingConfig or mapping into a SamplingConfig.

    Args:
        config: SamplingConfig instance or plain mapping
        n_channels: Channel count of the signal being processed, if known

    Returns:
        Validated SamplingConfig (bound to n_channels when given)
    """
    if isinstance(config, SamplingConfig):
        resolved = config
    elif isinstance(config, Mapping):
        resolved = SamplingConfig.from_mapping(config)
    else:
        raise ConfigurationError(
            f"Expected SamplingConfig or mapping, got {type(config).__name__}"
        )

    if n_channels is not None:
        resolved = resolved.for_channels(n_channels)
    return resolved


@dataclass(frozen=True)
class FilterConfig:
    """
    Configuration for the filtering cascade.

    Attributes:
        bandpass_low: Bandpass low corner in Hz
        bandpass_high: Bandpass high corner in Hz
        bandpass_order: Butterworth order of the bandpass
        notch_q: Quality factor of the powerline notch (higher = narrower)
    """
    bandpass_low: float = 1.0
    bandpass_high: float = 45.0
    bandpass_order: int = 4
    notch_q: float = 35.0

    def __post_init__(self) -> None:
        """Validate filter configuration."""
        if self.bandpass_low <= 0:
            raise ConfigurationError(f"bandpass_low must be positive, got {self.bandpass_low}")
        if self.bandpass_low >= self.bandpass_high:
            raise ConfigurationError(
                f"bandpass_low ({self.bandpass_low}) must be < bandpass_high ({self.bandpass_high})"
            )
        if self.bandpass_order < 1:
            raise ConfigurationError(f"bandpass_order must be >= 1, got {self.bandpass_order}")
        if self.notch_q <= 0:
            raise ConfigurationError(f"notch_q must be positive, got {self.notch_q}")


@dataclass(frozen=True)
class ArtifactConfig:
    """
    Configuration for artifact detection and removal.

    Attributes:
        amplitude_threshold_uv: |x| above this on any channel flags the sample
        muscle_band: Frequency band (Hz) used for muscle activity
        muscle_filter_order: Butterworth order of the muscle band-pass
        muscle_max_channels: Number of leading channels examined for muscle
        muscle_rms_window_seconds: Moving RMS window length
        muscle_rms_std_multiplier: RMS above this many RMS std flags a sample
        flatline_threshold_uv: Channel std below this marks a dead channel
        min_run_length: Runs must be longer than this to be tapered
        taper_fraction: Tukey taper fraction of the attenuation window
        taper_floor: Multiplier applied where the taper window is 0
    """
    amplitude_threshold_uv: float = 100.0
    muscle_band: Tuple[float, float] = (30.0, 100.0)
    muscle_filter_order: int = 4
    muscle_max_channels: int = 4
    muscle_rms_window_seconds: float = 1.0
    muscle_rms_std_multiplier: float = 3.0
    flatline_threshold_uv: float = 0.1
    min_run_length: int = 10
    taper_fraction: float = 0.3
    taper_floor: float = 0.3

    def __post_init__(self) -> None:
        """Validate artifact configuration."""
        low, high = self.muscle_band
        if not 0 < low < high:
            raise ConfigurationError(f"Invalid muscle_band: {self.muscle_band}")
        if self.amplitude_threshold_uv <= 0:
            raise ConfigurationError(
                f"amplitude_threshold_uv must be positive, got {self.amplitude_threshold_uv}"
            )
        if self.muscle_max_channels < 1:
            raise ConfigurationError(
                f"muscle_max_channels must be >= 1, got {self.muscle_max_channels}"
            )
        if self.muscle_rms_window_seconds <= 0:
            raise ConfigurationError(
                f"muscle_rms_window_seconds must be positive, got {self.muscle_rms_window_seconds}"
            )
        if self.flatline_threshold_uv < 0:
            raise ConfigurationError(
                f"flatline_threshold_uv must be >= 0, got {self.flatline_threshold_uv}"
            )
        if self.min_run_length < 0:
            raise ConfigurationError(f"min_run_length must be >= 0, got {self.min_run_length}")
        if not 0 <= self.taper_fraction <= 1:
            raise ConfigurationError(f"taper_fraction must be in [0, 1], got {self.taper_fraction}")
        if not 0 <= self.taper_floor <= 1:
            raise ConfigurationError(f"taper_floor must be in [0, 1], got {self.taper_floor}")


@dataclass(frozen=True)
class FeatureConfig:
    """
    Configuration for windowed feature extraction.

    Attributes:
        window_seconds: Analysis window duration
        overlap_seconds: Overlap between consecutive windows
        bands: Band name to inclusive (low, high) frequency range in Hz; each
            band adds one column per channel, so only the default five bands
            give the standard 15 features per channel
        spectral_edge: Fraction of total power defining the spectral edge
        welch_nperseg: Welch segment length (None = min(window, 256))
        welch_noverlap: Welch segment overlap (None = half a segment)
        welch_window: Taper applied to each Welch segment
        n_workers: Threads used to process windows (1 = sequential)
    """
    window_seconds: float = 2.0
    overlap_seconds: float = 1.0
    bands: Dict[str, Tuple[float, float]] = field(
        default_factory=lambda: FREQUENCY_BANDS.copy()
    )
    spectral_edge: float = 0.95
    welch_nperseg: Optional[int] = None
    welch_noverlap: Optional[int] = None
    welch_window: str = 'hann'
    n_workers: int = 1

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.window_seconds <= 0:
            raise ConfigurationError(f"window_seconds must be positive, got {self.window_seconds}")
        if not 0 <= self.overlap_seconds < self.window_seconds:
            raise ConfigurationError(
                f"overlap_seconds ({self.overlap_seconds}) must be in "
                f"[0, window_seconds={self.window_seconds})"
            )
        for name, (low, high) in self.bands.items():
            if low >= high:
                raise ConfigurationError(f"Band '{name}': low ({low}) must be < high ({high})")
        if not 0 < self.spectral_edge <= 1:
            raise ConfigurationError(f"spectral_edge must be in (0, 1], got {self.spectral_edge}")
        if self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")

    def window_samples(self, sampling_rate: float) -> int:
        """Window length in samples."""
        return int(round(self.window_seconds * sampling_rate))

    def step_samples(self, sampling_rate: float) -> int:
        """Distance between consecutive window starts in samples."""
        return self.window_samples(sampling_rate) - int(round(self.overlap_seconds * sampling_rate))
