import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

# Production identities are RSA-4096; 2048-bit keys keep the suite fast and
# exercise exactly the same code paths.
TEST_KEY_SIZE = 2048


def _rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def alice_key():
    return _rsa_key()


@pytest.fixture(scope="session")
def bob_key():
    return _rsa_key()


@pytest.fixture(scope="session")
def mallory_key():
    return _rsa_key()


@pytest.fixture(autouse=True)
def aegis_home(tmp_path, monkeypatch):
    home = tmp_path / "aegis_home"
    monkeypatch.setenv("AEGIS_HOME", str(home))
    monkeypatch.delenv("AEGIS_KEY_PASSPHRASE", raising=False)
    monkeypatch.delenv("AEGIS_IDENTITY_TAG", raising=False)
    monkeypatch.delenv("AEGIS_KEYSTORE", raising=False)
    monkeypatch.delenv("AEGIS_LOG_FILE", raising=False)
    return home
