"""
Nexus Stark - StarkNet account contract backend

Core modules:
- KeyManager: Encrypted signer / guardian key management
- Config: Multi-network configuration
- Account: Multicall construction, hashing and signing per wallet implementation
- Wallet: Multi-network account registry
"""

from .keymanager.keyManager import KeyManager
from .keymanager.crypto_utils import CryptoError, WrongPassword
from .keymanager.keys import StarkKeys, derive_keys, generate_keys
from .config import Config, NetworkConfig
from .calls import CallParameters, ExecuteCallParameters, aggregate
from .account import (
    Account,
    AccountVariant,
    ArgentAccount,
    InteractChoice,
    InteractOptions,
    OpenZeppelinAccount,
    account_class_for,
)
from .artifacts import ArtifactResolver
from .errors import (
    AccountError,
    ArtifactNotFoundError,
    CalldataEncodingError,
    GuardianUnavailableError,
    KeyMismatchError,
    ResponseDecodingError,
    UnsupportedOverrideError,
)
from .wallet import Wallet

__version__ = "0.1.0"

__all__ = [
    # Key Management
    "KeyManager",
    "CryptoError",
    "WrongPassword",
    "StarkKeys",
    "derive_keys",
    "generate_keys",

    # Configuration
    "Config",
    "NetworkConfig",
    "ArtifactResolver",

    # Core Classes
    "CallParameters",
    "ExecuteCallParameters",
    "aggregate",
    "Account",
    "AccountVariant",
    "ArgentAccount",
    "OpenZeppelinAccount",
    "InteractChoice",
    "InteractOptions",
    "account_class_for",
    "Wallet",

    # Errors
    "AccountError",
    "ArtifactNotFoundError",
    "CalldataEncodingError",
    "GuardianUnavailableError",
    "KeyMismatchError",
    "ResponseDecodingError",
    "UnsupportedOverrideError",
]
