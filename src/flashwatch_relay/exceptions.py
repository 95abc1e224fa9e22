"""Exception hierarchy for the relay."""


class RelayError(Exception):
    """Base exception for relay errors."""


class AlertParseError(RelayError, ValueError):
    """Raised when an inbound webhook body is not a valid alert event."""


