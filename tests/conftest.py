"""Shared fixtures: throwaway RSA key pairs written to temporary PEM files."""
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from envelope_vault.vault import EnvelopeCipher, KeyMaterialProvider


def _public_pem(key: rsa.RSAPrivateKey) -> bytes:
    return key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _private_pem(key: rsa.RSAPrivateKey, passphrase: bytes = None) -> bytes:
    if passphrase:
        encryption = serialization.BestAvailableEncryption(passphrase)
    else:
        encryption = serialization.NoEncryption()
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        encryption,
    )


@pytest.fixture(scope="session")
def rsa_private_key():
    """A 2048-bit key pair shared by the whole test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key():
    """A second, unrelated key pair."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def write_key_files(tmp_path):
    """Return a helper writing a key pair as PEM files into tmp_path."""
    def _write(private_key, public_key=None, passphrase=None):
        public_path = tmp_path / "public.pem"
        private_path = tmp_path / "private.pem"
        public_path.write_bytes(_public_pem(public_key or private_key))
        private_path.write_bytes(_private_pem(private_key, passphrase))
        return public_path, private_path
    return _write


@pytest.fixture
def key_files(write_key_files, rsa_private_key):
    return write_key_files(rsa_private_key)


@pytest.fixture
def provider(key_files):
    public_path, private_path = key_files
    return KeyMaterialProvider(public_path, private_path)


@pytest.fixture
def missing_provider(tmp_path):
    """Provider pointing at key files that do not exist."""
    return KeyMaterialProvider(
        tmp_path / "absent" / "public.pem",
        tmp_path / "absent" / "private.pem",
    )


@pytest.fixture
def cipher(provider):
    return EnvelopeCipher(provider)
