"""
Helpers for validating metric value changes during tests.

Works on labelled and unlabelled collectors through the registry, so a
sample that has never been observed reads as zero.
"""

from contextlib import contextmanager
from typing import Dict, Optional

from prometheus_client import REGISTRY


def sample_value(name: str, labels: Optional[Dict[str, str]] = None) -> float:
    """Current value of one sample (a counter's ``_total``, a gauge, a histogram's ``_count``)."""
    value = REGISTRY.get_sample_value(name, labels or {})
    return value or 0.0


@contextmanager
def metric_delta(name: str, expected_delta: float = 1, labels: Optional[Dict[str, str]] = None):
    """
    Context manager to validate metric value changes.

    Usage:
        with metric_delta("metaprobe_render_fallbacks_total"):
            # Code that should increment the counter by 1
            ...
    """
    initial_value = sample_value(name, labels)

    yield

    final_value = sample_value(name, labels)
    actual_delta = final_value - initial_value
    if actual_delta != expected_delta:
        raise AssertionError(
            f"Expected {name}{labels or ''} to change by {expected_delta}, "
            f"but it changed by {actual_delta} "
            f"(from {initial_value} to {final_value})"
        )


@contextmanager
def histogram_observes(name: str, labels: Optional[Dict[str, str]] = None, min_observations: int = 1):
    """Validate that a histogram recorded at least ``min_observations`` samples."""
    initial_count = sample_value(f"{name}_count", labels)

    yield

    observations = sample_value(f"{name}_count", labels) - initial_count
    if observations < min_observations:
        raise AssertionError(
            f"Expected at least {min_observations} observations of {name}, but got {observations}"
        )
