from .bridge import IdentityBridge
from .principal import (
    CallableCredentials,
    CredentialSource,
    IdentityProvider,
    Principal,
    StaticCredentials,
)

__all__ = [
    "IdentityBridge",
    "CallableCredentials",
    "CredentialSource",
    "IdentityProvider",
    "Principal",
    "StaticCredentials",
]
