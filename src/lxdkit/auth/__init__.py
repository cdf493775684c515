"""Authentication strategies for LXD."""
from .base import AuthStrategy
from .tls import CertificateAuth
from .token import TokenAuth

__all__ = ["AuthStrategy", "CertificateAuth", "TokenAuth"]
