"""
Domain services: report lifecycle, escalation, engagement, comments,
badges, notifications and user profiles.
"""

from civicworks.services.container import ServiceContainer, get_container, reset_container

__all__ = ["ServiceContainer", "get_container", "reset_container"]
