"""GitHub comment formatting."""

COMMENT_HEADER = "This PR has been judged to be too complex for the following reasons:"
COMMENT_TRAILER = "Please consider breaking these changes up in to smaller pieces."


def format_violations(violations: list[str]) -> str:
    """Format threshold violations as the body of a PR comment."""
    lines = [COMMENT_HEADER, ""]
    lines.extend(violations)
    lines.append(COMMENT_TRAILER)
    return "\n".join(lines)
