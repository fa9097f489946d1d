"""
Vault Exceptions — error taxonomy for the envelope engine and secret store.

Security Note:
    Messages are deliberately generic. They never carry key material,
    plaintext, or anything that separates "wrong key" from "corrupted
    ciphertext".
"""


class VaultError(Exception):
    """Base class for every error raised by the vault."""


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------

class KeyUnavailable(VaultError):
    """RSA key files are missing or could not be parsed."""


class EncryptionKeyUnavailable(KeyUnavailable):
    """Raised by ``encrypt`` when no key pair is available."""

    def __init__(self, message: str = "Encryption keys not available - cannot encrypt data"):
        super().__init__(message)


class DecryptionKeyUnavailable(KeyUnavailable):
    """Raised by ``decrypt`` when no key pair is available."""

    def __init__(self, message: str = "Encryption keys not available - cannot decrypt data"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Cipher
# ---------------------------------------------------------------------------

class CipherError(VaultError):
    """Unexpected failure inside the cryptographic primitives."""


class EncryptionFailure(CipherError):
    pass


class DecryptionFailure(CipherError):
    pass


class AuthenticationFailure(DecryptionFailure):
    """GCM tag verification failed; no plaintext was released."""

    def __init__(self, message: str = "message authentication failed"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Secret store
# ---------------------------------------------------------------------------

class SecretStoreError(VaultError):
    pass


class SecretNotFound(SecretStoreError):
    def __init__(self, message: str = "Secret not found"):
        super().__init__(message)


class SecretExpired(SecretStoreError):
    def __init__(self, message: str = "Secret has expired"):
        super().__init__(message)
