"""Scheduling module for podhoard's periodic jobs.

This module provides the scheduling infrastructure for the refresh, sweep
and backup jobs using APScheduler with async support and graceful error
handling.
"""

from .scheduler import JobScheduler

__all__ = ["JobScheduler"]
