from typing import Optional, Union

from .algorithms import HashAlgorithm, HMACProvider, default_provider
from .exceptions import DigitsError, HashUnavailableError, TimeDomainError
from .utils import Secret, decode_secret

MAX_DIGITS = 9


class OTP(object):
    """
    Base class for OTP handlers.
    """

    def __init__(
        self,
        s: Secret,
        digits: int = 6,
        algorithm: Union[str, HashAlgorithm] = HashAlgorithm.SHA1,
        provider: Optional[HMACProvider] = None,
    ) -> None:
        """
        :param s: secret, base32 text or raw key bytes
        :param digits: number of decimal digits in the OTP, 1 to 9
        :param algorithm: hash function used in the HMAC
        :param provider: HMAC implementation, defaults to :mod:`hashlib`
        """
        if not 1 <= digits <= MAX_DIGITS:
            raise DigitsError("digits must be between 1 and {}".format(MAX_DIGITS))
        self.digits = digits
        self.algorithm = HashAlgorithm.from_name(algorithm)
        self.provider = provider or default_provider
        if not self.provider.supports(self.algorithm):
            raise HashUnavailableError(self.algorithm)
        self.key = decode_secret(s)

    def generate_otp(self, input: int) -> str:
        """
        :param input: the HMAC counter value to use as the OTP input.
            Usually the time-step index computed from a Unix timestamp
        """
        # Implements RFC 4226
        digest = self.provider.digest(self.algorithm, self.key, self.int_to_bytestring(input))
        offset = digest[-1] & 0x0F
        code = (
            (digest[offset] & 0x7F) << 24
            | (digest[offset + 1] & 0xFF) << 16
            | (digest[offset + 2] & 0xFF) << 8
            | (digest[offset + 3] & 0xFF)
        )
        return str(code % 10**self.digits).zfill(self.digits)

    @staticmethod
    def int_to_bytestring(i: int, padding: int = 8) -> bytes:
        """
        Turns an integer to the OATH specified
        bytestring, which is fed to the HMAC
        along with the secret
        """
        if i < 0:
            raise TimeDomainError("counter must be a non-negative integer")
        try:
            return i.to_bytes(padding, "big")
        except OverflowError:
            raise TimeDomainError("counter does not fit in {} bytes".format(padding)) from None
