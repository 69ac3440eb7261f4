"""
Scheduled jobs.

Each module exposes ``async run(now=None) -> dict`` which evaluates its
eligibility against local wall-clock time and returns a summary of what it did.
"""

from . import meetup_reminder, no_show, review_request, status_transition

__all__ = ["meetup_reminder", "no_show", "review_request", "status_transition"]
