from . import base32 as base32
from .algorithms import HashAlgorithm as HashAlgorithm
from .algorithms import HashlibProvider as HashlibProvider
from .algorithms import HMACProvider as HMACProvider
from .cache import ReplayCache as ReplayCache
from .config import TotpConfig as TotpConfig
from .exceptions import Base32Error as Base32Error
from .exceptions import BufferSizeError as BufferSizeError
from .exceptions import ConfigurationError as ConfigurationError
from .exceptions import DigitsError as DigitsError
from .exceptions import HashUnavailableError as HashUnavailableError
from .exceptions import IdentityKeyError as IdentityKeyError
from .exceptions import TimeDomainError as TimeDomainError
from .exceptions import TOTPError as TOTPError
from .otp import OTP as OTP
from .totp import TOTP as TOTP
from .totp import TotpParameters as TotpParameters
from .totp import TotpResult as TotpResult
from .totp import compute_code as compute_code
from .utils import decode_secret as decode_secret
