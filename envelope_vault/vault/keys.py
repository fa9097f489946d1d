"""
Vault Key Material — Lazy, load-once access to the RSA key pair.

The key pair lives in two PEM files. They are read and parsed on first use,
exactly once per provider, even under concurrent first access. A failed load
is remembered so missing files are not polled on every request; a process
restart (or an explicit ``reset()``) allows another attempt.

Security Note:
    Never log key material or the passphrase. Only log paths and key sizes.
"""
import logging
import threading
from pathlib import Path
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .config import KeyConfig
from .exceptions import KeyUnavailable

logger = logging.getLogger("envelope_vault.vault")


class KeyMaterialProvider:
    """Supply cached RSA key handles to the envelope cipher.

    Use :meth:`from_config` for file-backed keys or :meth:`from_keys` to
    inject an in-memory key pair.
    """

    def __init__(
        self,
        public_key_path: Path,
        private_key_path: Path,
        passphrase: Optional[bytes] = None,
        min_rsa_bits: int = 2048,
    ):
        self._public_path = Path(public_key_path)
        self._private_path = Path(private_key_path)
        self._passphrase = passphrase
        self._min_bits = min_rsa_bits
        self._lock = threading.Lock()
        self._attempted = False
        self._error: Optional[str] = None
        self._public: Optional[rsa.RSAPublicKey] = None
        self._private: Optional[rsa.RSAPrivateKey] = None

    @classmethod
    def from_config(cls, config: KeyConfig) -> "KeyMaterialProvider":
        return cls(
            public_key_path=config.public_key_path,
            private_key_path=config.private_key_path,
            passphrase=config.passphrase,
            min_rsa_bits=config.min_rsa_bits,
        )

    @classmethod
    def from_keys(
        cls,
        private_key: rsa.RSAPrivateKey,
        public_key: Optional[rsa.RSAPublicKey] = None,
    ) -> "KeyMaterialProvider":
        """Build a provider around an already-parsed key pair."""
        provider = cls(Path("<memory>"), Path("<memory>"))
        provider._private = private_key
        provider._public = public_key or private_key.public_key()
        provider._attempted = True
        return provider

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _ensure_loaded(self) -> None:
        if self._attempted:
            return
        with self._lock:
            if self._attempted:
                return
            try:
                self._public, self._private = self._load()
                logger.info(
                    "RSA key pair loaded (%d bits) from %s",
                    self._private.key_size, self._private_path.parent,
                )
            except KeyUnavailable as err:
                self._error = str(err)
                logger.warning("RSA keys not available: %s", err)
            finally:
                self._attempted = True

    def _load(self) -> tuple[rsa.RSAPublicKey, rsa.RSAPrivateKey]:
        """Read and parse both PEM files.

        Raises:
            KeyUnavailable: If either file is missing, unreadable or not a
                usable RSA key.
        """
        public_pem = self._read(self._public_path)
        private_pem = self._read(self._private_path)
        try:
            public_key = serialization.load_pem_public_key(public_pem)
            private_key = serialization.load_pem_private_key(
                private_pem, password=self._passphrase,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as err:
            raise KeyUnavailable("RSA key material could not be parsed") from err

        if not isinstance(public_key, rsa.RSAPublicKey):
            raise KeyUnavailable(f"{self._public_path} is not an RSA public key")
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise KeyUnavailable(f"{self._private_path} is not an RSA private key")
        if private_key.key_size < self._min_bits:
            raise KeyUnavailable(
                f"RSA key must be at least {self._min_bits} bits, "
                f"got {private_key.key_size}"
            )
        if private_key.public_key().public_numbers() != public_key.public_numbers():
            raise KeyUnavailable("RSA public and private keys do not match")
        return public_key, private_key

    @staticmethod
    def _read(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise KeyUnavailable(f"Key file not found: {path}") from None
        except OSError as err:
            raise KeyUnavailable(f"Key file not readable: {path}") from err

    def reset(self) -> None:
        """Forget the cached key pair so the next access reloads it."""
        with self._lock:
            self._attempted = False
            self._error = None
            self._public = None
            self._private = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def available(self) -> bool:
        """Return True once both keys have been loaded and parsed."""
        self._ensure_loaded()
        return self._public is not None and self._private is not None

    def public_key(self) -> rsa.RSAPublicKey:
        if not self.available():
            raise KeyUnavailable(self._error or "RSA public key not available")
        return self._public

    def private_key(self) -> rsa.RSAPrivateKey:
        if not self.available():
            raise KeyUnavailable(self._error or "RSA private key not available")
        return self._private
