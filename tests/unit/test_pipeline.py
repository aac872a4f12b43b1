"""
Unit Tests for Pipeline Module
==============================

Tests for the Preprocessor, configuration loading and the end-to-end
EEGPipeline.

Author: NeuroSync Project Team
License: MIT
"""

import numpy as np
import pytest

from neurosync.config import SamplingConfig
from neurosync.errors import ConfigurationError, InsufficientDataError
from neurosync.pipeline import (
    EEGPipeline,
    PipelineConfig,
    Preprocessor,
    create_default_pipeline,
    create_pipeline_from_config,
)


def _rhythm(fs, n_samples, freq, phase):
    t = np.arange(n_samples) / fs
    return 10 * np.sin(2 * np.pi * freq * t + phase) + 2 * np.random.randn(n_samples)


@pytest.fixture
def one_dead_of_five(fs):
    """5 channels; channel 2 is the average of the others and goes flat under CAR."""
    n_samples = 10 * fs
    others = [_rhythm(fs, n_samples, 8 + 3 * ch, ch) for ch in range(4)]
    data = np.vstack(others[:2] + [np.mean(others, axis=0)] + others[2:])
    return data


@pytest.fixture
def two_dead_of_four(fs):
    """4 channels; channels 2 and 3 equal the average and go flat under CAR."""
    n_samples = 10 * fs
    p = _rhythm(fs, n_samples, 10, 0.0)
    q = _rhythm(fs, n_samples, 20, 1.0)
    return np.vstack([p, q, (p + q) / 2, (p + q) / 2])


# =============================================================================
# Preprocessor Tests
# =============================================================================


class TestPreprocessor:
    """Tests for Preprocessor."""

    def test_clean_recording(self, synthetic_eeg, fs):
        """Test a healthy recording keeps every channel."""
        cleaned, report, info = Preprocessor({"samplingRate": fs}).process(synthetic_eeg)

        assert cleaned.shape == synthetic_eeg.shape
        assert report.n_dead_channels == 0
        assert info.dead_channels == []
        assert not info.interpolated
        assert not info.interpolation_skipped
        assert info.n_channels_clean == 8

    def test_minority_dead_is_interpolated(self, one_dead_of_five, fs):
        """Test one dead channel out of five is refilled from its neighbour."""
        cleaned, _, info = Preprocessor({"samplingRate": fs}).process(one_dead_of_five)

        assert info.dead_channels == [2]
        assert info.interpolated
        assert cleaned.shape == one_dead_of_five.shape
        # Channels 1 and 3 are equidistant; the lower index is copied
        assert np.array_equal(cleaned[2], cleaned[1])

    def test_half_dead_is_not_interpolated(self, two_dead_of_four, fs):
        """Test interpolation is skipped when half the channels are dead."""
        cleaned, _, info = Preprocessor({"samplingRate": fs}).process(two_dead_of_four)

        assert info.dead_channels == [2, 3]
        assert not info.interpolated
        assert info.interpolation_skipped
        assert "2 of 4" in info.skip_reason
        assert cleaned.shape == (2, two_dead_of_four.shape[1])
        assert info.n_channels_clean == 2

    def test_single_channel_recording(self, fs):
        """Test a single channel is zeroed by CAR and rejected."""
        with pytest.raises(InsufficientDataError):
            Preprocessor({"samplingRate": fs}).process(np.random.randn(1, 10 * fs) * 10)

    def test_all_channels_dead(self, fs):
        """Test an all-flat recording raises instead of returning no channels."""
        with pytest.raises(InsufficientDataError):
            Preprocessor({"samplingRate": fs}).process(np.zeros((2, 1000)))

    def test_interpolation_disabled(self, one_dead_of_five, fs):
        preprocessor = Preprocessor({"samplingRate": fs}, interpolate=False)
        cleaned, _, info = preprocessor.process(one_dead_of_five)

        assert cleaned.shape[0] == 4
        assert info.skip_reason == "interpolation disabled"

    def test_samples_preserved(self, synthetic_eeg, fs):
        cleaned, _, info = Preprocessor({"samplingRate": fs}).process(synthetic_eeg)

        assert cleaned.shape[1] == synthetic_eeg.shape[1]
        assert info.n_samples_clean == info.n_samples_original

    def test_input_not_modified(self, synthetic_eeg, fs):
        original = synthetic_eeg.copy()
        Preprocessor({"samplingRate": fs}).process(synthetic_eeg)
        assert np.array_equal(synthetic_eeg, original)

    def test_info_to_dict(self, synthetic_eeg, fs):
        _, _, info = Preprocessor({"samplingRate": fs}).process(synthetic_eeg)
        summary = info.to_dict()

        assert summary["n_channels_original"] == 8
        assert summary["n_samples_original"] == synthetic_eeg.shape[1]


# =============================================================================
# Configuration Tests
# =============================================================================


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_defaults(self):
        config = PipelineConfig()

        assert config.sampling.sampling_rate == 250
        assert config.filters.notch_q == 35.0
        assert config.artifacts.amplitude_threshold_uv == 100.0
        assert config.features.window_seconds == 2.0
        assert config.interpolate_dead_channels

    def test_yaml_roundtrip(self, tmp_path):
        """Test saving and reloading gives an equal configuration."""
        config = PipelineConfig.from_dict({
            "sampling": {"samplingRate": 500, "powerlineFrequency": 60},
            "artifacts": {"amplitude_threshold_uv": 80.0},
            "features": {"n_workers": 2},
        })
        path = tmp_path / "pipeline.yaml"

        config.to_yaml(str(path))
        loaded = PipelineConfig.from_yaml(str(path))

        assert loaded == config
        assert loaded.sampling.powerline_frequency == 60
        assert loaded.artifacts.muscle_band == (30.0, 100.0)

    def test_shipped_config_matches_defaults(self, project_root_path):
        """Test configs/pipeline.yaml holds the library defaults."""
        loaded = PipelineConfig.from_yaml(str(project_root_path / "configs" / "pipeline.yaml"))
        assert loaded == PipelineConfig()

    def test_unknown_section(self):
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_dict({"decoder": {}})

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_dict({"filters": {"cutoff": 10.0}})

    def test_invalid_value(self):
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_dict({"features": {"overlap_seconds": 5.0}})


# =============================================================================
# End-to-End Tests
# =============================================================================


@pytest.mark.integration
class TestEEGPipeline:
    """Tests for EEGPipeline."""

    def test_full_run(self, synthetic_eeg):
        """Test 10 s of 8-channel EEG gives 9 windows of 120 features."""
        result = create_default_pipeline().run(synthetic_eeg)

        assert result.cleaned.shape == (8, 2500)
        assert result.features.shape == (9, 120)
        assert result.n_windows == 9
        assert len(result.feature_names) == 120
        assert result.info.dead_channels == []
        assert set(result.timings_ms) == {"preprocessing_ms", "feature_ms", "total_ms"}
        assert np.all(np.isfinite(result.features))

    def test_dropped_channels_reach_features(self, two_dead_of_four):
        """Test features follow the reduced channel count."""
        result = create_default_pipeline().run(two_dead_of_four)

        assert result.features.shape == (9, 30)
        assert result.feature_names[-1] == "Ch02_MeanFreq"

    def test_dropped_channels_with_fixed_channel_count(self, two_dead_of_four, fs):
        """Test a configured channel count applies to the raw recording only."""
        config = PipelineConfig(sampling=SamplingConfig(sampling_rate=fs, channel_count=4))
        result = EEGPipeline(config).run(two_dead_of_four)

        assert result.features.shape == (9, 30)

    def test_interpolated_channel_count(self, one_dead_of_five):
        result = create_default_pipeline().run(one_dead_of_five)
        assert result.features.shape == (9, 5 * 15)

    def test_deterministic(self, synthetic_eeg):
        pipeline = create_default_pipeline()
        first = pipeline.run(synthetic_eeg)
        second = pipeline.run(synthetic_eeg)

        assert np.array_equal(first.cleaned, second.cleaned)
        assert np.array_equal(first.features, second.features)

    def test_from_config_file(self, synthetic_eeg, project_root_path):
        pipeline = create_pipeline_from_config(
            str(project_root_path / "configs" / "pipeline.yaml")
        )
        result = pipeline.run(synthetic_eeg)
        assert result.features.shape == (9, 120)

    def test_no_surviving_channels(self, fs):
        """Test the run stops at preprocessing when every channel is dead."""
        pipeline = create_default_pipeline()

        with pytest.raises(InsufficientDataError):
            pipeline.run(np.random.randn(1, 10 * fs) * 10)
        with pytest.raises(InsufficientDataError):
            pipeline.run(np.zeros((2, 1000)))

    def test_incompatible_sampling_rate(self):
        with pytest.raises(ConfigurationError):
            create_default_pipeline(sampling_rate=80)
