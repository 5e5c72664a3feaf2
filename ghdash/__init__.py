"""gh-dashboard: live terminal view of GitHub Actions workflow runs."""

__version__ = "0.1.0"
