# Andy Zhao
"""
Error taxonomy for homography estimation.

- ConfigurationError: bad inputs, detected before any computation
- ResourceExhaustedError: scratch buffers could not be allocated
- ExecutionError: the parallel primitives (backend) failed

Per-iteration numerical degeneracy is never an error: a collinear or
duplicated sample just produces a bad candidate that loses the selection.
"""

from __future__ import annotations


class HomographyError(Exception):
    """Base class for every error raised by the estimator."""


class ConfigurationError(HomographyError, ValueError):
    """Invalid iterations / nsamples / threshold / array shapes."""


class ResourceExhaustedError(HomographyError, MemoryError):
    """Allocation of scratch state failed; no result was written."""


class ExecutionError(HomographyError, RuntimeError):
    """The execution backend reported a failure; the caller may retry."""
