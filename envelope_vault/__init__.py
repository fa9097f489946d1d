"""Envelope Vault.

One-time secret storage protected by hybrid envelope encryption.
"""
from .version import __version__
from .vault import (
    Envelope,
    EnvelopeCipher,
    KeyMaterialProvider,
    SecretService,
    VaultConfig,
)

__all__ = [
    "__version__",
    "Envelope",
    "EnvelopeCipher",
    "KeyMaterialProvider",
    "SecretService",
    "VaultConfig",
]
