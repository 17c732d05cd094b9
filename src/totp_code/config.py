import logging
import re
import time
from typing import Any, Optional, Union

from .algorithms import HashAlgorithm
from .cache import ReplayCache
from .exceptions import ConfigurationError, HashUnavailableError
from .otp import MAX_DIGITS
from .totp import TOTP, TotpParameters
from .utils import Secret

log = logging.getLogger(__name__)

MIN_TIME_STEP = 5

OVERRIDABLE = ("time_offset", "unix_time", "time_step", "otp_length", "algorithm")

_INTEGER = re.compile(r"[+-]?[0-9]+")


class TotpConfig(object):
    """
    Settings shared by every code computed for one service.
    """

    def __init__(
        self,
        unix_time: Union[int, str] = 0,
        time_step: Union[int, str] = 30,
        time_offset: Union[int, str] = 0,
        otp_length: Union[int, str] = 6,
        algorithm: Union[str, HashAlgorithm] = HashAlgorithm.SHA1,
        allow_reuse: bool = False,
        allow_override: bool = False,
    ) -> None:
        """
        :param unix_time: Unix time to start counting time steps (T0)
        :param time_step: time step in seconds (X), at least 5
        :param time_offset: seconds to adjust the current time by
        :param otp_length: number of digits in a code, 1 to 9
        :param algorithm: HMAC hash function name
        :param allow_reuse: if false, :meth:`replay_cache` builds a cache
        :param allow_override: allow :meth:`with_overrides` to change
            the time parameters per request
        """
        self.unix_time = _integer("unix_time", unix_time, minimum=0)
        self.time_step = _integer("time_step", time_step, minimum=MIN_TIME_STEP)
        self.time_offset = _integer("time_offset", time_offset)
        self.otp_length = _integer("otp_length", otp_length, minimum=1, maximum=MAX_DIGITS)
        try:
            self.algorithm = HashAlgorithm.from_name(algorithm)
        except HashUnavailableError as exc:
            raise ConfigurationError("unknown algorithm: {}".format(algorithm)) from exc
        self.allow_reuse = allow_reuse
        self.allow_override = allow_override

    def __repr__(self) -> str:
        return (
            "TotpConfig(unix_time={0.unix_time}, time_step={0.time_step}, time_offset={0.time_offset}, "
            "otp_length={0.otp_length}, algorithm={0.algorithm.value!r}, allow_reuse={0.allow_reuse}, "
            "allow_override={0.allow_override})".format(self)
        )

    def with_overrides(self, **values: Any) -> "TotpConfig":
        """
        Returns a copy with per-request values replacing the configured ones.

        Only the time parameters, the code length and the algorithm can be
        overridden, and only when ``allow_override`` is set; otherwise the
        config is returned unchanged. ``None`` values are ignored.
        """
        unknown = set(values) - set(OVERRIDABLE)
        if unknown:
            raise ConfigurationError("cannot override: {}".format(", ".join(sorted(unknown))))
        if not self.allow_override:
            if values:
                log.debug("ignoring overrides %s, allow_override is off", sorted(values))
            return self
        settings = {
            "unix_time": self.unix_time,
            "time_step": self.time_step,
            "time_offset": self.time_offset,
            "otp_length": self.otp_length,
            "algorithm": self.algorithm,
        }
        settings.update((k, v) for k, v in values.items() if v is not None)
        return TotpConfig(allow_reuse=self.allow_reuse, allow_override=self.allow_override, **settings)

    def parameters(self, now: Optional[int] = None) -> TotpParameters:
        if now is None:
            now = int(time.time())
        return TotpParameters(
            now=now,
            t0=self.unix_time,
            interval=self.time_step,
            offset=self.time_offset,
            digits=self.otp_length,
            algorithm=self.algorithm,
        )

    def totp(self, secret: Secret, replay_cache: Optional[ReplayCache] = None) -> TOTP:
        return TOTP(
            secret,
            digits=self.otp_length,
            algorithm=self.algorithm,
            interval=self.time_step,
            t0=self.unix_time,
            offset=self.time_offset,
            replay_cache=replay_cache,
        )

    def replay_cache(self) -> Optional[ReplayCache]:
        """
        A new cache for this service, or None when codes may be reused.
        """
        if self.allow_reuse:
            return None
        return ReplayCache()


def _integer(name: str, value: Union[int, str], minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise ConfigurationError("{} must be an integer, not a boolean".format(name))
    if isinstance(value, str):
        if not _INTEGER.fullmatch(value.strip()):
            raise ConfigurationError("{} is not a decimal integer: {!r}".format(name, value))
        value = int(value)
    if not isinstance(value, int):
        raise ConfigurationError("{} must be an integer".format(name))
    if minimum is not None and value < minimum:
        raise ConfigurationError("{} must be >= {}".format(name, minimum))
    if maximum is not None and value > maximum:
        raise ConfigurationError("{} must be <= {}".format(name, maximum))
    return value
