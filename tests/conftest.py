"""
Pytest Configuration and Fixtures
==================================

Shared test configuration and fixtures for all test modules.
Handles path setup for importing the neurosync package from src/.

Author: NeuroSync Project Team
License: MIT
"""

import sys
from pathlib import Path

# Add src directory to path for imports
project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

import pytest
import numpy as np


# =============================================================================
# Global Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def random_seed():
    """Seed numpy for reproducible synthetic signals."""
    np.random.seed(42)
    return 42


@pytest.fixture(scope="session")
def project_root_path():
    """Get project root path."""
    return project_root


@pytest.fixture
def fs():
    """Default sampling rate used by the synthetic recordings."""
    return 250


@pytest.fixture
def synthetic_eeg(fs):
    """8-channel, 10-second recording with alpha/beta content and noise (µV)."""
    n_channels = 8
    n_samples = 10 * fs
    t = np.arange(n_samples) / fs

    data = np.zeros((n_channels, n_samples))
    for ch in range(n_channels):
        data[ch] = (
            10 * np.sin(2 * np.pi * 10 * t + ch)      # Alpha
            + 5 * np.sin(2 * np.pi * 20 * t + 2 * ch)  # Beta
            + 2 * np.random.randn(n_samples)           # Noise
            + 30.0                                     # DC offset
        )

    return data


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Add custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
