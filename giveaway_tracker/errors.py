from __future__ import annotations


class TrackerError(Exception):
    """Base class for errors raised by the tracker."""


class TransportUnavailable(TrackerError):
    """A tracked channel could not be fetched or is not a text channel."""

    def __init__(self, channel_id: str, reason: str = ""):
        self.channel_id = channel_id
        self.reason = reason
        super().__init__(f"channel {channel_id} unavailable{': ' + reason if reason else ''}")


class AuthorizationDenied(TrackerError):
    """Caller identity does not match the configured owner."""


class CorrelationMismatch(TrackerError):
    """A source choice arrived from a user who does not own the pending import."""


class NoPendingImport(CorrelationMismatch):
    """No pending import exists (or it expired) for the submitting user."""
