"""Issue Labeler - rule-driven labels and comments for GitHub issues and PRs."""

__version__ = "0.1.0"
