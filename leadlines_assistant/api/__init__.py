from .app import create_app
from .deps import TokenVerifier, VerifiedIdentity

__all__ = ["create_app", "TokenVerifier", "VerifiedIdentity"]
