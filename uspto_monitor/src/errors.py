"""Exception types raised by the monitor core and mapped to envelopes by the API."""


class MonitorError(Exception):
    """Base class for expected, user-facing monitor failures."""

    status_code = 500


class MatterNotFoundError(MonitorError):
    status_code = 404

    def __init__(self, lawmatics_id: str):
        super().__init__(f"Matter not found: {lawmatics_id}")
        self.lawmatics_id = lawmatics_id


class DuplicateMatterError(MonitorError):
    status_code = 400


class ConfigurationError(MonitorError):
    status_code = 500


class AuthorizationError(MonitorError):
    status_code = 401


class DocumentsNotFoundError(MonitorError):
    status_code = 404


class UpstreamError(MonitorError):
    """A USPTO registry call failed while serving a direct lookup."""

    status_code = 502
