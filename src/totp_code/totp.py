import calendar
import datetime
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, Optional, Union

from .algorithms import HashAlgorithm, HMACProvider
from .exceptions import IdentityKeyError, TimeDomainError
from .otp import OTP
from .utils import Secret, strings_equal

if TYPE_CHECKING:
    from .cache import IdentityKey, ReplayCache

log = logging.getLogger(__name__)

Timestamp = Union[int, float, datetime.datetime]


@dataclass(frozen=True)
class TotpParameters:
    """
    Time parameters of a single TOTP calculation.

    ``t0``, ``interval`` and ``now`` are Unix seconds; ``offset`` adjusts
    ``now`` to compensate for a drifting clock.
    """

    now: int
    t0: int = 0
    interval: int = 30
    offset: int = 0
    digits: int = 6
    algorithm: HashAlgorithm = HashAlgorithm.SHA1

    @property
    def adjusted_time(self) -> int:
        return self.now + self.offset

    @property
    def elapsed(self) -> int:
        """
        Seconds since ``t0`` on the adjusted clock, the time scale used by
        :class:`~totp_code.cache.ReplayCache`.
        """
        return self.adjusted_time - self.t0

    def time_step_index(self) -> int:
        """
        Number of complete intervals between ``t0`` and the adjusted time.

        :raises TimeDomainError: if the interval is not positive or the
            adjusted time lies before ``t0``
        """
        if self.interval <= 0:
            raise TimeDomainError("time step must be a positive number of seconds")
        if self.t0 > self.adjusted_time:
            raise TimeDomainError(
                "adjusted time {} is before the epoch start {}".format(self.adjusted_time, self.t0)
            )
        return self.elapsed // self.interval


class TotpResult(NamedTuple):
    code: str
    step: int


class TOTP(OTP):
    """
    Handler for time-based OTP counters.
    """

    def __init__(
        self,
        s: Secret,
        digits: int = 6,
        algorithm: Union[str, HashAlgorithm] = HashAlgorithm.SHA1,
        interval: int = 30,
        t0: int = 0,
        offset: int = 0,
        provider: Optional[HMACProvider] = None,
        replay_cache: Optional["ReplayCache"] = None,
    ) -> None:
        """
        :param s: secret, base32 text or raw key bytes
        :param digits: number of integers in the OTP
        :param algorithm: hash function used in the HMAC
        :param interval: the time step in seconds
        :param t0: Unix time to start counting time steps from
        :param offset: seconds added to the clock before computing the step
        :param provider: HMAC implementation, defaults to :mod:`hashlib`
        :param replay_cache: when set, :meth:`verify` rejects reused codes
        """
        if interval <= 0:
            raise TimeDomainError("interval must be a positive number of seconds")
        if t0 < 0:
            raise TimeDomainError("t0 must not be negative")
        self.interval = interval
        self.t0 = t0
        self.offset = offset
        self.replay_cache = replay_cache
        super().__init__(s=s, digits=digits, algorithm=algorithm, provider=provider)

    def parameters(self, for_time: Timestamp) -> TotpParameters:
        return TotpParameters(
            now=_unix_time(for_time),
            t0=self.t0,
            interval=self.interval,
            offset=self.offset,
            digits=self.digits,
            algorithm=self.algorithm,
        )

    def timecode(self, for_time: Timestamp) -> int:
        """
        Accepts either a timezone naive (`for_time.tzinfo is None`) or
        a timezone aware datetime as argument and returns the
        corresponding time-step index.
        """
        return self.parameters(for_time).time_step_index()

    def calculate(self, for_time: Timestamp) -> TotpResult:
        """
        Computes the code for a point in time.

        :param for_time: Unix timestamp or datetime
        :returns: the code and the time-step index it was derived from
        """
        params = self.parameters(for_time)
        step = params.time_step_index()
        code = self.generate_otp(step)
        log.debug(
            "totp algorithm=%s now=%d offset=%d t0=%d x=%d t=%d key=<binary> key_len=%d digits=%d",
            self.algorithm.value,
            params.now,
            params.offset,
            params.t0,
            params.interval,
            step,
            len(self.key),
            self.digits,
        )
        return TotpResult(code, step)

    def at(self, for_time: Timestamp) -> str:
        """
        Generates the OTP for the given time.

        :param for_time: the time to generate an OTP for
        :returns: OTP value
        """
        return self.calculate(for_time).code

    def now(self) -> str:
        """
        Generates the current time OTP

        :returns: OTP value
        """
        return self.at(time.time())

    def verify(
        self,
        otp: str,
        for_time: Optional[Timestamp] = None,
        identity_key: Optional["IdentityKey"] = None,
    ) -> bool:
        """
        Verifies the OTP passed in against the current time OTP.

        Only the current time step is accepted. When the handler has a
        replay cache, a matching code is recorded against ``identity_key``
        and a second use within its validity window is rejected; the key
        is then required.

        :param otp: the OTP to check against
        :param for_time: time to check OTP at (defaults to now)
        :param identity_key: who is presenting the code, e.g. a user name
        :returns: True if verification succeeded, False otherwise
        :raises IdentityKeyError: if the handler has a replay cache and no
            ``identity_key`` is given
        """
        if self.replay_cache is not None and identity_key is None:
            raise IdentityKeyError("an identity key is required when reuse is not allowed")
        if for_time is None:
            for_time = time.time()
        result = self.calculate(for_time)
        if not strings_equal(str(otp), result.code):
            return False
        if self.replay_cache is None:
            return True
        return self.replay_cache.check_and_record_use(identity_key, result.step, self.interval)


def compute_code(key: Secret, params: TotpParameters, provider: Optional[HMACProvider] = None) -> TotpResult:
    """
    Computes a TOTP code from key material and explicit time parameters.

    :param key: secret, base32 text or raw key bytes
    :param params: time parameters, digit count and hash algorithm
    :param provider: HMAC implementation, defaults to :mod:`hashlib`
    :returns: the zero padded code and its time-step index
    """
    params.time_step_index()
    totp = TOTP(
        key,
        digits=params.digits,
        algorithm=params.algorithm,
        interval=params.interval,
        t0=params.t0,
        offset=params.offset,
        provider=provider,
    )
    return totp.calculate(params.now)


def _unix_time(for_time: Timestamp) -> int:
    if isinstance(for_time, datetime.datetime):
        if for_time.tzinfo is None:
            return int(time.mktime(for_time.timetuple()))
        return calendar.timegm(for_time.utctimetuple())
    if for_time < 0:
        raise TimeDomainError("time must not be negative")
    return int(for_time)
