#!/usr/bin/env python3
"""
NeuroSync EEG Core Demo
=======================

Runs the complete EEG core on a synthetic recording:
1. Synthetic EEG with alpha/beta rhythms, noise, powerline hum,
   eye-blink spikes and one dead channel
2. Filtering and common average reference
3. Artifact detection and removal
4. Dead channel interpolation
5. Windowed feature extraction

Usage:
    python scripts/demo.py
    python scripts/demo.py --duration 30        # 30 seconds of EEG
    python scripts/demo.py --powerline 60       # 60 Hz mains
    python scripts/demo.py --config configs/pipeline.yaml

Author: NeuroSync Project Team
License: MIT
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

# Add src directory to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

import numpy as np

from neurosync import EEGPipeline, NeuroSyncError, PipelineConfig, SamplingConfig

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def synthesize_eeg(
    n_channels: int,
    duration: float,
    sampling_rate: int,
    powerline: int,
    seed: int = 0
) -> np.ndarray:
    """
    Generate a synthetic raw recording in microvolts.

    Args:
        n_channels: Number of channels
        duration: Duration in seconds
        sampling_rate: Sampling rate in Hz
        powerline: Mains frequency added as hum
        seed: Random seed

    Returns:
        Raw EEG, shape (n_channels, n_samples)
    """
    rng = np.random.default_rng(seed)
    n_samples = int(duration * sampling_rate)
    t = np.arange(n_samples) / sampling_rate

    data = np.zeros((n_channels, n_samples))
    for ch in range(n_channels):
        data[ch] = (
            15 * np.sin(2 * np.pi * 10 * t + rng.uniform(0, 2 * np.pi))   # Alpha
            + 6 * np.sin(2 * np.pi * 22 * t + rng.uniform(0, 2 * np.pi))  # Beta
            + 4 * np.sin(2 * np.pi * powerline * t)                       # Hum
            + 3 * rng.standard_normal(n_samples)                          # Noise
            + rng.uniform(-40, 40)                                        # DC offset
        )

    # Eye blinks on the frontal channels
    blink = 250 * np.hanning(int(0.3 * sampling_rate))
    for onset in np.arange(2.0, duration - 1.0, 4.0):
        start = int(onset * sampling_rate)
        data[:min(2, n_channels), start:start + blink.size] += blink

    # Dead channel: equals the channel average, so it is flat after CAR
    if n_channels >= 3:
        dead = n_channels - 1
        data[dead] = np.mean(np.delete(data, dead, axis=0), axis=0)

    return data


def print_summary(result) -> None:
    """Print a summary of one pipeline run."""
    info = result.info

    print("\n" + "=" * 60)
    print("EEG CORE SUMMARY")
    print("=" * 60)

    print("\nPreprocessing:")
    print(f"   Channels: {info.n_channels_original} -> {info.n_channels_clean}")
    print(f"   Samples: {info.n_samples_original}")
    print(f"   Artifact samples: {info.artifact_percentage:.1f}%")
    print(f"   Dead channels: {info.dead_channels or 'none'}")
    if info.interpolated:
        print("   Dead channels interpolated")
    elif info.interpolation_skipped:
        print(f"   Interpolation skipped: {info.skip_reason}")

    print("\nFeatures:")
    print(f"   Windows: {result.n_windows}")
    print(f"   Features per window: {result.features.shape[1]}")
    print(f"   First columns: {', '.join(result.feature_names[:4])}, ...")

    alpha_cols = [i for i, name in enumerate(result.feature_names) if name.endswith("_Alpha")]
    beta_cols = [i for i, name in enumerate(result.feature_names) if name.endswith("_Beta")]
    print(f"   Mean alpha power: {np.mean(result.features[:, alpha_cols]):.2f} µV²/Hz")
    print(f"   Mean beta power: {np.mean(result.features[:, beta_cols]):.2f} µV²/Hz")

    print("\nTimings:")
    for stage, ms in result.timings_ms.items():
        print(f"   {stage}: {ms:.1f} ms")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="NeuroSync EEG Core Demonstration")
    parser.add_argument(
        "--config", "-c", type=str, default=None, help="Pipeline YAML configuration"
    )
    parser.add_argument(
        "--duration",
        "-d",
        type=float,
        default=20.0,
        help="Recording duration in seconds (default: 20)",
    )
    parser.add_argument(
        "--channels", type=int, default=8, help="Number of channels (default: 8)"
    )
    parser.add_argument(
        "--powerline",
        type=int,
        choices=[50, 60],
        default=None,
        help="Mains frequency in Hz (default: from config, else 50)",
    )
    parser.add_argument(
        "--workers", type=int, default=None, help="Threads for feature extraction"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = PipelineConfig.from_yaml(args.config) if args.config else PipelineConfig()
        if args.powerline is not None:
            config.sampling = replace(config.sampling, powerline_frequency=args.powerline)
        if args.workers is not None:
            config.features = replace(config.features, n_workers=args.workers)
        if config.sampling.channel_count is not None:
            config.sampling = replace(config.sampling, channel_count=args.channels)

        sampling: SamplingConfig = config.sampling
        raw = synthesize_eeg(
            args.channels,
            args.duration,
            sampling.sampling_rate,
            sampling.powerline_frequency,
        )
        logger.info(
            f"Synthesized {args.channels} channels x {raw.shape[1]} samples "
            f"at {sampling.sampling_rate} Hz"
        )

        result = EEGPipeline(config).run(raw)

    except NeuroSyncError as e:
        logger.error(f"Demo error: {e}")
        sys.exit(1)

    print_summary(result)


if __name__ == "__main__":
    main()
