"""Textual front end for the dashboard."""

from .app import RunDashboard

__all__ = ["RunDashboard"]
