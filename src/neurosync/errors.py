"""
Error Taxonomy
==============

Exceptions raised at stage boundaries of the EEG core.

All core errors derive from NeuroSyncError and from ValueError, so callers
that already guard numerical code with ``except ValueError`` keep working.

    NeuroSyncError
    ├── ConfigurationError     invalid or incompatible sampling parameters
    ├── InsufficientDataError  signal too short for the requested operation
    └── DegenerateSignalError  zero-length signal

Zero-power windows are NOT errors: feature extraction falls back to 0 for
every ratio whose denominator vanishes.

Author: NeuroSync Project Team
License: MIT
"""

from __future__ import annotations


class NeuroSyncError(Exception):
    """Base class for all errors raised by the EEG core."""


class ConfigurationError(NeuroSyncError, ValueError):
    """Sampling parameters are invalid or incompatible with filter design."""


class InsufficientDataError(NeuroSyncError, ValueError):
    """Signal is too short for a window, filter pad or variance estimate."""


class DegenerateSignalError(NeuroSyncError, ValueError):
    """Signal has no samples at all."""
