"""Output module for reporting results back to GitHub."""

from pr_threshold.output.commit_status import STATUS_CONTEXT, STATUS_DESCRIPTION, create_status
from pr_threshold.output.github_comment import format_violations

__all__ = ["STATUS_CONTEXT", "STATUS_DESCRIPTION", "create_status", "format_violations"]
