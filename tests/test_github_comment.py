"""Tests for GitHub comment formatting."""

from pr_threshold.output.github_comment import format_violations


def test_format_single_violation():
    body = format_violations(["50 files were changed, but the threshold is 10"])

    assert body == (
        "This PR has been judged to be too complex for the following reasons:\n"
        "\n"
        "50 files were changed, but the threshold is 10\n"
        "Please consider breaking these changes up in to smaller pieces."
    )


def test_each_violation_on_its_own_line():
    body = format_violations(["first reason", "second reason"])
    lines = body.splitlines()

    assert lines[2] == "first reason"
    assert lines[3] == "second reason"
    assert lines[-1].startswith("Please consider breaking")
    assert lines[4] == "Please consider breaking these changes up in to smaller pieces."
