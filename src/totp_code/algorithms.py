import enum
import hashlib
import hmac
from typing import Protocol, Union

from .exceptions import HashUnavailableError


class HashAlgorithm(enum.Enum):
    """
    HMAC hash functions a TOTP code can be computed with.
    """

    SHA1 = "sha1"
    SHA224 = "sha224"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    @classmethod
    def from_name(cls, name: Union[str, "HashAlgorithm"]) -> "HashAlgorithm":
        """
        Looks up an algorithm by name.

        Matching is case-insensitive and ignores an ``HMAC`` prefix and any
        ``-`` or ``_`` separators, so ``"HMAC-SHA256"`` and ``"sha256"``
        are the same algorithm.
        """
        if isinstance(name, cls):
            return name
        normalized = str(name).lower().replace("-", "").replace("_", "")
        if normalized.startswith("hmac"):
            normalized = normalized[4:]
        try:
            return cls(normalized)
        except ValueError:
            raise HashUnavailableError(name) from None


class HMACProvider(Protocol):
    def supports(self, algorithm: HashAlgorithm) -> bool:
        ...

    def digest(self, algorithm: HashAlgorithm, key: bytes, message: bytes) -> bytes:
        ...


class HashlibProvider(object):
    """
    HMAC provider backed by :mod:`hashlib` and :mod:`hmac`.
    """

    def supports(self, algorithm: HashAlgorithm) -> bool:
        return algorithm.value in hashlib.algorithms_available

    def digest(self, algorithm: HashAlgorithm, key: bytes, message: bytes) -> bytes:
        if not self.supports(algorithm):
            raise HashUnavailableError(algorithm)
        return hmac.new(key, message, algorithm.value).digest()


default_provider = HashlibProvider()
