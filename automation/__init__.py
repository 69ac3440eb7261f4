"""
Background automation for meetups.

Advances meetup status from the wall clock, reminds participants before a
meetup starts, asks for reviews afterwards and settles no-shows. Everything
is driven by periodic ticks of :class:`automation.scheduler.Scheduler`.
"""

from .database import get_connection, get_transaction, get_engine, close_engine
from .scheduler import Scheduler, JOB_CONFIG

__all__ = [
    "get_connection",
    "get_transaction",
    "get_engine",
    "close_engine",
    "Scheduler",
    "JOB_CONFIG",
]
