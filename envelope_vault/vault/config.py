"""
Vault Configuration — Key file locations and validated settings.

Reads settings from environment variables:
    VAULT_PUBLIC_KEY_PATH = <path to public PEM>   (default keys/public.pem)
    VAULT_PRIVATE_KEY_PATH = <path to private PEM> (default keys/private.pem)
    VAULT_PRIVATE_KEY_PASSPHRASE = <optional PEM passphrase>
    VAULT_OAEP_HASH = sha1 | sha256 | sha512      (default sha256)
    VAULT_MIN_RSA_BITS = <integer>                (default 2048)
    VAULT_SECRET_TTL = <seconds>                  (default 86400)
    VAULT_ONE_TIME_READ = true | false            (default true)

Security Note:
    Never log key material or the passphrase. Only log paths.
"""
import os
import logging
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import hashes
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger("envelope_vault.vault")

DEFAULT_PUBLIC_KEY_PATH = "keys/public.pem"
DEFAULT_PRIVATE_KEY_PATH = "keys/private.pem"
DEFAULT_SECRET_TTL = 24 * 60 * 60

_OAEP_HASHES = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
    "sha512": hashes.SHA512,
}

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def oaep_hash(name: str) -> hashes.HashAlgorithm:
    """Return a fresh hash instance for the given OAEP hash name.

    Raises:
        ValueError: If the hash name is not supported.
    """
    try:
        return _OAEP_HASHES[name.lower()]()
    except KeyError:
        raise ValueError(f"Unsupported OAEP hash: {name}") from None


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean environment variable.

    Raises:
        ValueError: If the value is not a recognised boolean literal.
    """
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


class KeyConfig(BaseModel):
    """Validated key-pair location and RSA-OAEP parameters."""

    public_key_path: Path = Field(default=Path(DEFAULT_PUBLIC_KEY_PATH))
    private_key_path: Path = Field(default=Path(DEFAULT_PRIVATE_KEY_PATH))
    passphrase: Optional[bytes] = Field(default=None, repr=False)
    oaep_hash: str = Field(default="sha256")
    min_rsa_bits: int = Field(default=2048, ge=1024, le=16384)

    model_config = {"frozen": True}

    @field_validator("oaep_hash")
    @classmethod
    def validate_oaep_hash(cls, v: str) -> str:
        """Validate the OAEP hash is supported."""
        v = v.lower()
        if v not in _OAEP_HASHES:
            raise ValueError(f"Unsupported OAEP hash: {v}")
        return v

    @classmethod
    def from_env(cls) -> "KeyConfig":
        """Create KeyConfig by loading values from environment."""
        passphrase = os.environ.get("VAULT_PRIVATE_KEY_PASSPHRASE")
        return cls(
            public_key_path=Path(
                os.environ.get("VAULT_PUBLIC_KEY_PATH", DEFAULT_PUBLIC_KEY_PATH)
            ),
            private_key_path=Path(
                os.environ.get("VAULT_PRIVATE_KEY_PATH", DEFAULT_PRIVATE_KEY_PATH)
            ),
            passphrase=passphrase.encode("utf-8") if passphrase else None,
            oaep_hash=os.environ.get("VAULT_OAEP_HASH", "sha256"),
            min_rsa_bits=int(os.environ.get("VAULT_MIN_RSA_BITS", "2048")),
        )


class VaultConfig(BaseModel):
    """Validated secret store configuration."""

    keys: KeyConfig = Field(default_factory=KeyConfig)
    secret_ttl: int = Field(default=DEFAULT_SECRET_TTL, ge=60)
    one_time_read: bool = Field(default=True)
    max_data_length: int = Field(default=10000, ge=1)
    max_title_length: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def validate_lengths(self) -> "VaultConfig":
        """Ensure a title can never be longer than the payload limit."""
        if self.max_title_length > self.max_data_length:
            raise ValueError(
                f"max_title_length ({self.max_title_length}) cannot exceed "
                f"max_data_length ({self.max_data_length})"
            )
        return self

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        keys = KeyConfig.from_env()
        config = cls(
            keys=keys,
            secret_ttl=int(os.environ.get("VAULT_SECRET_TTL", DEFAULT_SECRET_TTL)),
            one_time_read=env_flag("VAULT_ONE_TIME_READ", True),
        )
        logger.debug(
            "Vault configured: public=%s private=%s oaep=%s ttl=%ds one_time=%s",
            keys.public_key_path, keys.private_key_path, keys.oaep_hash,
            config.secret_ttl, config.one_time_read,
        )
        return config
