"""
Unit Tests for Preprocessing Module
===================================

Tests for sampling configuration, the filtering cascade and common
average reference.

Author: NeuroSync Project Team
License: MIT
"""

import numpy as np
import pytest

from neurosync.config import FilterConfig, SamplingConfig, resolve_sampling_config
from neurosync.errors import ConfigurationError, DegenerateSignalError, InsufficientDataError
from neurosync.preprocessing import (
    FilterCascade,
    filter_cascade,
    reference,
    remove_dc_offset,
    validate_signal,
)


def _tone(freq, fs, n_samples, amplitude=1.0):
    t = np.arange(n_samples) / fs
    return amplitude * np.sin(2 * np.pi * freq * t)


# =============================================================================
# Configuration Tests
# =============================================================================


class TestSamplingConfig:
    """Tests for SamplingConfig."""

    def test_default_values(self):
        """Test default powerline frequency and derived channel count."""
        config = SamplingConfig(sampling_rate=250)
        assert config.powerline_frequency == 50
        assert config.channel_count is None
        assert config.nyquist == 125.0

    def test_from_mapping(self):
        """Test construction from recognized mapping keys."""
        config = SamplingConfig.from_mapping(
            {"samplingRate": 500, "powerlineFrequency": 60, "channelCount": 4}
        )
        assert config.sampling_rate == 500
        assert config.powerline_frequency == 60
        assert config.channel_count == 4

    def test_from_mapping_snake_case(self):
        """Test snake_case spellings are accepted."""
        config = SamplingConfig.from_mapping({"sampling_rate": 256})
        assert config.sampling_rate == 256

    def test_missing_sampling_rate(self):
        """Test that samplingRate is required."""
        with pytest.raises(ConfigurationError):
            SamplingConfig.from_mapping({"powerlineFrequency": 50})

    def test_unknown_key(self):
        """Test that unknown keys are rejected."""
        with pytest.raises(ConfigurationError):
            SamplingConfig.from_mapping({"samplingRate": 250, "fs": 250})

    def test_invalid_values(self):
        """Test that invalid sampling parameters raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            SamplingConfig(sampling_rate=0)
        with pytest.raises(ConfigurationError):
            SamplingConfig(sampling_rate=-100)
        with pytest.raises(ConfigurationError):
            SamplingConfig(sampling_rate=250, powerline_frequency=55)

    def test_configuration_error_is_value_error(self):
        """Test that callers catching ValueError still see config errors."""
        with pytest.raises(ValueError):
            SamplingConfig(sampling_rate=0)

    def test_channel_count_binding(self):
        """Test derived and mismatched channel counts."""
        config = resolve_sampling_config({"samplingRate": 250}, n_channels=8)
        assert config.channel_count == 8

        with pytest.raises(ConfigurationError):
            resolve_sampling_config({"samplingRate": 250, "channelCount": 4}, n_channels=8)

    def test_config_is_immutable(self):
        """Test that stages cannot mutate the sampling configuration."""
        config = SamplingConfig(sampling_rate=250)
        with pytest.raises(AttributeError):
            config.sampling_rate = 500


class TestFilterConfig:
    """Tests for FilterConfig."""

    def test_defaults(self):
        config = FilterConfig()
        assert (config.bandpass_low, config.bandpass_high) == (1.0, 45.0)
        assert config.bandpass_order == 4
        assert config.notch_q == 35.0

    def test_invalid_bandpass(self):
        """Test that inverted corners raise error."""
        with pytest.raises(ConfigurationError):
            FilterConfig(bandpass_low=45.0, bandpass_high=1.0)


# =============================================================================
# Signal Validation Tests
# =============================================================================


class TestValidateSignal:
    """Tests for validate_signal."""

    def test_returns_float_copy(self):
        data = np.ones((2, 10), dtype=int)
        validated = validate_signal(data)
        assert validated.dtype == np.float64
        validated[0, 0] = 5.0
        assert data[0, 0] == 1

    def test_rejects_1d(self):
        with pytest.raises(ValueError):
            validate_signal(np.zeros(10))

    def test_rejects_non_finite(self):
        data = np.zeros((2, 10))
        data[1, 3] = np.nan
        with pytest.raises(ValueError):
            validate_signal(data)

    def test_zero_length(self):
        with pytest.raises(DegenerateSignalError):
            validate_signal(np.zeros((4, 0)))


# =============================================================================
# Filter Cascade Tests
# =============================================================================


class TestFilterCascade:
    """Tests for FilterCascade."""

    def test_output_shape(self, synthetic_eeg, fs):
        """Test filtering preserves shape."""
        filtered = filter_cascade(synthetic_eeg, {"samplingRate": fs})
        assert filtered.shape == synthetic_eeg.shape
        assert not np.any(np.isnan(filtered))

    def test_dc_removal(self, synthetic_eeg):
        """Test that DC removal zeroes each channel mean."""
        centered = remove_dc_offset(synthetic_eeg)
        assert np.allclose(np.mean(centered, axis=1), 0, atol=1e-10)

    def test_input_not_modified(self, synthetic_eeg, fs):
        """Test that the caller's array is left untouched."""
        original = synthetic_eeg.copy()
        filter_cascade(synthetic_eeg, SamplingConfig(sampling_rate=fs))
        assert np.array_equal(synthetic_eeg, original)

    def test_notch_filter(self, fs):
        """Test notch removes the powerline tone and keeps alpha."""
        n_samples = 20 * fs
        data = (_tone(10, fs, n_samples) + _tone(50, fs, n_samples)).reshape(1, -1)

        filtered = filter_cascade(data, {"samplingRate": fs, "powerlineFrequency": 50})

        # Evaluate the middle 10 seconds, away from edge transients
        segment = slice(5 * fs, 15 * fs)
        fft_original = np.abs(np.fft.rfft(data[0, segment]))
        fft_filtered = np.abs(np.fft.rfft(filtered[0, segment]))
        freqs = np.fft.rfftfreq(10 * fs, d=1.0 / fs)

        idx_10hz = int(np.argmin(np.abs(freqs - 10)))
        idx_50hz = int(np.argmin(np.abs(freqs - 50)))

        assert fft_filtered[idx_50hz] < fft_original[idx_50hz] * 0.05
        assert fft_filtered[idx_10hz] > fft_original[idx_10hz] * 0.9

    def test_zero_phase(self, fs):
        """Test that an in-band tone is not shifted in time."""
        n_samples = 20 * fs
        tone = _tone(10, fs, n_samples)

        filtered = filter_cascade(tone.reshape(1, -1), {"samplingRate": fs})

        segment = slice(5 * fs, 15 * fs)
        assert np.allclose(filtered[0, segment], tone[segment], atol=0.05)

    def test_bandpass_removes_drift(self, fs):
        """Test slow drift below 1 Hz is removed."""
        n_samples = 20 * fs
        tone = _tone(10, fs, n_samples)
        drift = _tone(0.2, fs, n_samples, amplitude=50.0)

        filtered = filter_cascade((tone + drift).reshape(1, -1), {"samplingRate": fs})

        segment = slice(5 * fs, 15 * fs)
        assert np.max(np.abs(filtered[0, segment] - tone[segment])) < 0.1

    def test_powerline_60(self, fs):
        """Test notch follows the configured powerline frequency."""
        n_samples = 20 * fs
        data = (_tone(10, fs, n_samples) + _tone(60, fs, n_samples)).reshape(1, -1)

        filtered = filter_cascade(data, {"samplingRate": fs, "powerlineFrequency": 60})

        segment = slice(5 * fs, 15 * fs)
        fft_filtered = np.abs(np.fft.rfft(filtered[0, segment]))
        fft_original = np.abs(np.fft.rfft(data[0, segment]))
        idx_60hz = 60 * 10
        assert fft_filtered[idx_60hz] < fft_original[idx_60hz] * 0.05

    @pytest.mark.parametrize(
        "sampling_rate, powerline",
        [(80, 50), (90, 50), (100, 50), (100, 60), (120, 60)],
    )
    def test_incompatible_sampling_rate(self, sampling_rate, powerline):
        """Test that Nyquist at or below a corner raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            FilterCascade(SamplingConfig(sampling_rate=sampling_rate, powerline_frequency=powerline))

    def test_lowest_valid_sampling_rate(self):
        """Test that a rate just above both corners is accepted."""
        cascade = FilterCascade(SamplingConfig(sampling_rate=101, powerline_frequency=50))
        assert cascade.min_samples > 0

    def test_short_signal(self, fs):
        """Test signal shorter than the filter pad raises InsufficientDataError."""
        with pytest.raises(InsufficientDataError):
            filter_cascade(np.random.randn(2, 20), {"samplingRate": fs})

    def test_zero_length_signal(self, fs):
        with pytest.raises(DegenerateSignalError):
            filter_cascade(np.zeros((2, 0)), {"samplingRate": fs})

    def test_channel_count_mismatch(self, synthetic_eeg, fs):
        with pytest.raises(ConfigurationError):
            filter_cascade(synthetic_eeg, {"samplingRate": fs, "channelCount": 4})

    def test_filter_response(self, fs):
        """Test combined response notches the powerline and passes alpha."""
        cascade = FilterCascade(SamplingConfig(sampling_rate=fs))
        freqs, magnitude_db = cascade.get_filter_response()

        idx_10hz = int(np.argmin(np.abs(freqs - 10)))
        idx_50hz = int(np.argmin(np.abs(freqs - 50)))

        assert magnitude_db[idx_10hz] > -1.0
        assert magnitude_db[idx_50hz] < -20.0


# =============================================================================
# Reference Tests
# =============================================================================


class TestReference:
    """Tests for common average reference."""

    def test_common_average_reference(self, synthetic_eeg):
        """Test mean across channels is zero after CAR."""
        referenced = reference(synthetic_eeg)

        assert referenced.shape == synthetic_eeg.shape
        mean_per_sample = np.mean(referenced, axis=0)
        assert np.allclose(mean_per_sample, 0, atol=1e-10)

    def test_removes_common_signal(self):
        """Test that a signal shared by all channels is cancelled."""
        common = np.random.randn(500)
        local = np.random.randn(4, 500)
        referenced = reference(local + common)

        assert np.allclose(referenced, reference(local))

    def test_single_channel(self):
        """Test single channel references to zero."""
        referenced = reference(np.random.randn(1, 100))
        assert np.allclose(referenced, 0)
