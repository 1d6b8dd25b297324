"""Connector modules for external service integrations."""

from .drive_connector import DriveConnector
from .lawmatics_connector import LawmaticsConnector
from .mail_connector import MailConnector
from .uspto_connector import UsptoConnector

__all__ = [
    'DriveConnector',
    'LawmaticsConnector',
    'MailConnector',
    'UsptoConnector'
]
