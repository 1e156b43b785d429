"""Threshold gate to flag pull requests that are too complex."""

from pr_threshold.config import ThresholdConfig
from pr_threshold.github_client import PullRequestSnapshot

# Limits accepted in configuration that evaluate() does not check yet.
INERT_THRESHOLDS = ("max_commits", "max_comments", "max_lines")


def evaluate(pr: PullRequestSnapshot, thresholds: ThresholdConfig) -> list[str]:
    """Return one message per exceeded threshold; an empty list means the PR passes."""
    violations = []

    if thresholds.max_files and pr.changed_files > thresholds.max_files:
        violations.append(
            f"{pr.changed_files} files were changed, "
            f"but the threshold is {thresholds.max_files}"
        )

    return violations


def inert_thresholds(thresholds: ThresholdConfig) -> list[str]:
    """Names of configured (non-zero) limits that evaluate() ignores."""
    return [name for name in INERT_THRESHOLDS if getattr(thresholds, name)]
