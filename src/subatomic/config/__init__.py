"""
Subatomic configuration.

Pydantic-based settings read from SUBATOMIC_* environment variables and an
optional .env file.
"""

from subatomic.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
