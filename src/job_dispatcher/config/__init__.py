"""
Module: config
Description: Package initialization for dispatcher configuration.
"""

from .settings import AwsSettings, MessageSettings, QueueSettings, Settings, load_settings

__all__ = [
    "AwsSettings",
    "MessageSettings",
    "QueueSettings",
    "Settings",
    "load_settings",
]
