"""Gates module for deterministic checks."""

from pr_threshold.gates.threshold_gate import evaluate, inert_thresholds

__all__ = ["evaluate", "inert_thresholds"]
