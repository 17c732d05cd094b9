import datetime
import hashlib

import pytest

from totp_code import (
    OTP,
    TOTP,
    HashAlgorithm,
    HashlibProvider,
    ReplayCache,
    TotpConfig,
    TotpParameters,
    compute_code,
    decode_secret,
)
from totp_code.exceptions import (
    Base32Error,
    DigitsError,
    HashUnavailableError,
    IdentityKeyError,
    TimeDomainError,
)

SHA1_KEY = b"12345678901234567890"
SHA256_KEY = b"12345678901234567890123456789012"
SHA512_KEY = b"1234567890123456789012345678901234567890123456789012345678901234"

# RFC 6238 appendix B
RFC_VECTORS = [
    (59, "94287082", "46119246", "90693936"),
    (1111111109, "07081804", "68084774", "25091201"),
    (1111111111, "14050471", "67062674", "99943326"),
    (1234567890, "89005924", "91819424", "93441116"),
    (2000000000, "69279037", "90698825", "38618901"),
    (20000000000, "65353130", "77737706", "47863826"),
]


@pytest.mark.parametrize("now, sha1, sha256, sha512", RFC_VECTORS)
def test_rfc6238_vectors(now: int, sha1: str, sha256: str, sha512: str) -> None:
    for key, algorithm, expected in (
        (SHA1_KEY, HashAlgorithm.SHA1, sha1),
        (SHA256_KEY, HashAlgorithm.SHA256, sha256),
        (SHA512_KEY, HashAlgorithm.SHA512, sha512),
    ):
        result = compute_code(key, TotpParameters(now=now, digits=8, algorithm=algorithm))
        assert result.code == expected
        assert result.step == now // 30


def test_base32_secret() -> None:
    params = TotpParameters(now=1234567890, digits=8)
    assert compute_code("GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ", params).code == "89005924"


def test_shorter_codes_keep_low_digits() -> None:
    assert compute_code(SHA1_KEY, TotpParameters(now=59, digits=6)).code == "287082"
    assert compute_code(SHA1_KEY, TotpParameters(now=1111111109, digits=7)).code == "7081804"


@pytest.mark.parametrize("digits", range(1, 10))
def test_code_is_zero_padded(digits: int) -> None:
    code = compute_code(SHA1_KEY, TotpParameters(now=1111111109, digits=digits)).code
    assert len(code) == digits
    assert code.isdigit()
    if digits <= 8:
        assert "07081804".endswith(code)
    else:
        assert code.endswith("07081804")


def test_same_window_same_code() -> None:
    totp = TOTP(SHA1_KEY, digits=8)
    first = totp.calculate(30 * 1000)
    for now in range(30 * 1000, 30 * 1001):
        assert totp.calculate(now) == first
    after = totp.calculate(30 * 1001)
    assert after.step == first.step + 1


def test_t0_and_offset_shift_the_clock() -> None:
    assert compute_code(SHA1_KEY, TotpParameters(now=159, t0=100, digits=8)) == ("94287082", 1)
    assert compute_code(SHA1_KEY, TotpParameters(now=0, offset=59, digits=8)) == ("94287082", 1)
    assert compute_code(SHA1_KEY, TotpParameters(now=89, offset=-30, digits=8)) == ("94287082", 1)


def test_clock_before_epoch() -> None:
    with pytest.raises(TimeDomainError):
        compute_code(SHA1_KEY, TotpParameters(now=10, t0=20))
    with pytest.raises(TimeDomainError):
        compute_code(SHA1_KEY, TotpParameters(now=10, offset=-11))
    with pytest.raises(TimeDomainError):
        TOTP(SHA1_KEY, t0=100).at(99)


def test_zero_interval() -> None:
    with pytest.raises(TimeDomainError):
        compute_code(SHA1_KEY, TotpParameters(now=59, interval=0))
    with pytest.raises(TimeDomainError):
        TOTP(SHA1_KEY, interval=0)


def test_step_must_fit_in_64_bits() -> None:
    with pytest.raises(TimeDomainError):
        compute_code(SHA1_KEY, TotpParameters(now=2**64, interval=1))
    assert OTP.int_to_bytestring(2**64 - 1) == b"\xff" * 8


@pytest.mark.parametrize("digits", [0, 10, -1])
def test_digits_out_of_range(digits: int) -> None:
    with pytest.raises(DigitsError):
        compute_code(SHA1_KEY, TotpParameters(now=59, digits=digits))


def test_empty_key() -> None:
    with pytest.raises(Base32Error):
        compute_code(b"", TotpParameters(now=59))
    with pytest.raises(Base32Error):
        TOTP("")


def test_decode_secret() -> None:
    assert decode_secret("GEZDGNBVGY3TQOJQ") == b"1234567890"
    assert decode_secret(b"raw key") == b"raw key"
    assert decode_secret(bytearray(b"\x00\x01")) == b"\x00\x01"
    with pytest.raises(Base32Error):
        decode_secret("GEZDGNB!")


@pytest.mark.parametrize(
    "name, algorithm",
    [
        ("sha1", HashAlgorithm.SHA1),
        ("SHA224", HashAlgorithm.SHA224),
        ("HMAC-SHA256", HashAlgorithm.SHA256),
        ("hmacsha384", HashAlgorithm.SHA384),
        ("sha-512", HashAlgorithm.SHA512),
        (HashAlgorithm.SHA1, HashAlgorithm.SHA1),
    ],
)
def test_algorithm_names(name: str, algorithm: HashAlgorithm) -> None:
    assert HashAlgorithm.from_name(name) is algorithm


def test_unknown_algorithm() -> None:
    with pytest.raises(HashUnavailableError):
        HashAlgorithm.from_name("md5")
    with pytest.raises(HashUnavailableError):
        TOTP(SHA1_KEY, algorithm="whirlpool")


class RecordingProvider(HashlibProvider):
    def __init__(self, available=None):
        self.available = available
        self.calls = []

    def supports(self, algorithm):
        if self.available is not None and algorithm not in self.available:
            return False
        return super().supports(algorithm)

    def digest(self, algorithm, key, message):
        self.calls.append((algorithm, key, message))
        return super().digest(algorithm, key, message)


def test_injected_provider_receives_counter() -> None:
    provider = RecordingProvider()
    result = compute_code(SHA1_KEY, TotpParameters(now=59, digits=8), provider=provider)
    assert result.code == "94287082"
    assert provider.calls == [(HashAlgorithm.SHA1, SHA1_KEY, b"\x00" * 7 + b"\x01")]


def test_unavailable_hash_fails() -> None:
    provider = RecordingProvider(available={HashAlgorithm.SHA1})
    params = TotpParameters(now=59, algorithm=HashAlgorithm.SHA256)
    with pytest.raises(HashUnavailableError):
        compute_code(SHA256_KEY, params, provider=provider)
    assert provider.calls == []


def test_hashlib_provider_digest_sizes() -> None:
    provider = HashlibProvider()
    for algorithm in HashAlgorithm:
        digest = provider.digest(algorithm, b"key", b"message")
        assert len(digest) == hashlib.new(algorithm.value).digest_size


def test_datetime_input() -> None:
    totp = TOTP(SHA1_KEY, digits=8)
    moment = datetime.datetime(2009, 2, 13, 23, 31, 30, tzinfo=datetime.timezone.utc)
    assert totp.timecode(moment) == 1234567890 // 30
    assert totp.at(moment) == "89005924"


def test_verify() -> None:
    totp = TOTP(SHA1_KEY, digits=8)
    assert totp.verify("94287082", for_time=59)
    assert totp.verify(94287082, for_time=59)
    assert not totp.verify("94287083", for_time=59)
    assert not totp.verify("94287082", for_time=60)


def test_verify_with_replay_cache() -> None:
    cache = ReplayCache()
    totp = TOTP(SHA1_KEY, digits=8, replay_cache=cache)
    assert totp.verify("94287082", for_time=59, identity_key="alice")
    assert not totp.verify("94287082", for_time=45, identity_key="alice")
    assert totp.verify("94287082", for_time=59, identity_key="bob")
    # a wrong code is never recorded
    assert not totp.verify("00000000", for_time=59, identity_key="carol")
    assert "carol" not in cache
    assert totp.verify(totp.at(60), for_time=60, identity_key="alice")


def test_verify_with_replay_cache_requires_identity() -> None:
    cache = ReplayCache()
    totp = TOTP(SHA1_KEY, digits=8, replay_cache=cache)
    for _ in range(3):
        with pytest.raises(IdentityKeyError):
            totp.verify("94287082", for_time=59)
    with pytest.raises(IdentityKeyError):
        totp.verify("94287082", for_time=59, identity_key="")
    assert len(cache) == 0
    assert totp.verify("94287082", for_time=59, identity_key="alice")
    assert not totp.verify("94287082", for_time=59, identity_key="alice")


def test_verify_from_config_fails_closed() -> None:
    config = TotpConfig(otp_length=8)
    totp = config.totp(SHA1_KEY, replay_cache=config.replay_cache())
    with pytest.raises(ValueError):
        totp.verify("94287082", for_time=59)
    reuse = TotpConfig(otp_length=8, allow_reuse=True)
    totp = reuse.totp(SHA1_KEY, replay_cache=reuse.replay_cache())
    assert [totp.verify("94287082", for_time=59) for _ in range(3)] == [True, True, True]
