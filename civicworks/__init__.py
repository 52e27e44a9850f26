"""
CivicWorks - civic issue reporting backend.

Citizens report infrastructure problems, the community engages with them,
and reports move through a review lifecycle with emergency escalation.
"""

__version__ = "0.1.0"
