from typing import Optional


class TOTPError(Exception):
    """
    Base class for every error raised by this package.
    """


class Base32Error(TOTPError, ValueError):
    """
    Invalid character or invalid padding in a Base32 encoded secret.
    """


class BufferSizeError(TOTPError):
    """
    Destination buffer is too small for the decoded secret.
    """

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__("buffer holds {} bytes, {} required".format(available, required))


class TimeDomainError(TOTPError, ValueError):
    """
    Time parameters that cannot produce a time-step index.
    """


class DigitsError(TOTPError, ValueError):
    """
    Requested code length outside the supported range.
    """


class HashUnavailableError(TOTPError):
    """
    Requested HMAC algorithm is unknown or not provided.
    """

    def __init__(self, algorithm: Optional[object]) -> None:
        self.algorithm = algorithm
        super().__init__("hash algorithm not available: {}".format(algorithm))


class IdentityKeyError(TOTPError, ValueError):
    """
    Missing or empty identity key for replay protection.
    """


class ConfigurationError(TOTPError, ValueError):
    """
    Setting out of bounds or not parseable.
    """
