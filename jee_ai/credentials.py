"""
Secure Credentials Manager
==========================
Provides API key storage and retrieval for the inference providers using
multiple backends:
1. System keyring (most secure - uses OS credential store)
2. Encrypted file with machine-specific key
3. Environment variables (fallback)

The orchestrator never reads these stores directly: a CredentialSet is
snapshotted per request and answers "present secret or absence" for each
provider.

NEVER stores API keys in plain text or in code.
"""

import base64
import getpass
import hashlib
import json
import logging
import os
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

import keyring
from keyring.errors import KeyringError
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

# Constants
SERVICE_NAME = "jee_ai"
CONFIG_DIR = Path.home() / ".jee_ai"
ENCRYPTED_CREDS_FILE = CONFIG_DIR / "credentials.enc"

KNOWN_PROVIDERS = ("google", "groq", "openrouter")


@dataclass(frozen=True)
class APICredential:
    """Immutable credential container with secure string handling"""

    provider: str
    _key: str  # Private - never exposed directly

    def get_key(self) -> str:
        logger.debug(f"API key accessed for provider: {self.provider}")
        return self._key

    def __repr__(self) -> str:
        """Prevent accidental key exposure in logs"""
        return f"APICredential(provider={self.provider}, key=****)"

    def __str__(self) -> str:
        return self.__repr__()


class CredentialBackend(ABC):
    """Abstract base class for credential storage backends"""

    @abstractmethod
    def get(self, provider: str) -> str | None:
        """Retrieve API key for provider"""

    @abstractmethod
    def set(self, provider: str, api_key: str) -> bool:
        """Store API key for provider"""

    @abstractmethod
    def delete(self, provider: str) -> bool:
        """Remove API key for provider"""

    @abstractmethod
    def list_providers(self) -> list[str]:
        """List all stored providers"""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if this backend is available on the system"""


class KeyringBackend(CredentialBackend):
    """Uses OS keychain/keyring for secure storage (most secure option)"""

    @property
    def is_available(self) -> bool:
        try:
            keyring.get_password(SERVICE_NAME, "__test__")
            return True
        except KeyringError:
            return False

    def get(self, provider: str) -> str | None:
        if not self.is_available:
            return None
        try:
            return keyring.get_password(SERVICE_NAME, provider)
        except KeyringError as e:
            logger.warning(f"Keyring get failed for {provider}: {e}")
            return None

    def set(self, provider: str, api_key: str) -> bool:
        if not self.is_available:
            return False
        try:
            keyring.set_password(SERVICE_NAME, provider, api_key)
            logger.info(f"Stored credential in keyring for: {provider}")
            return True
        except KeyringError as e:
            logger.error(f"Keyring set failed for {provider}: {e}")
            return False

    def delete(self, provider: str) -> bool:
        if not self.is_available:
            return False
        try:
            keyring.delete_password(SERVICE_NAME, provider)
            return True
        except KeyringError as e:
            logger.warning(f"Keyring delete failed for {provider}: {e}")
            return False

    def list_providers(self) -> list[str]:
        # Keyring can't enumerate; probe the providers we know about
        return [p for p in KNOWN_PROVIDERS if self.get(p)]


class EncryptedFileBackend(CredentialBackend):
    """Encrypted file storage using machine-specific key derivation"""

    def __init__(self, path: Path = ENCRYPTED_CREDS_FILE):
        self.path = path
        self._fernet: Fernet | None = None
        self._init_encryption()

    @property
    def is_available(self) -> bool:
        return self._fernet is not None

    def _get_machine_id(self) -> bytes:
        """Generate machine-specific identifier for key derivation"""
        identifiers = []

        if sys.platform == "linux":
            try:
                with open("/etc/machine-id") as f:
                    identifiers.append(f.read().strip())
            except OSError:
                pass

        identifiers.extend(
            [
                getpass.getuser(),
                os.uname().nodename if hasattr(os, "uname") else "unknown",
            ]
        )

        combined = ":".join(identifiers)
        return hashlib.sha256(combined.encode()).digest()

    def _init_encryption(self) -> None:
        """Initialize Fernet encryption with machine-specific key"""
        try:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=b"jee_ai_v1",
                iterations=480000,  # OWASP recommended minimum
            )
            key = base64.urlsafe_b64encode(kdf.derive(self._get_machine_id()))
            self._fernet = Fernet(key)
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to initialize encryption: {e}")
            self._fernet = None

    def _load_credentials(self) -> dict[str, str]:
        if self._fernet is None or not self.path.exists():
            return {}

        try:
            decrypted = self._fernet.decrypt(self.path.read_bytes())
            return json.loads(decrypted.decode())
        except (OSError, InvalidToken, ValueError) as e:
            logger.error(f"Failed to load credentials: {e}")
            return {}

    def _save_credentials(self, creds: dict[str, str]) -> bool:
        if self._fernet is None:
            return False

        try:
            encrypted = self._fernet.encrypt(json.dumps(creds).encode())

            # Write atomically with restricted permissions
            temp_file = self.path.with_suffix(".tmp")
            temp_file.write_bytes(encrypted)
            os.chmod(temp_file, 0o600)
            temp_file.replace(self.path)
            return True
        except OSError as e:
            logger.error(f"Failed to save credentials: {e}")
            return False

    def get(self, provider: str) -> str | None:
        return self._load_credentials().get(provider)

    def set(self, provider: str, api_key: str) -> bool:
        creds = self._load_credentials()
        creds[provider] = api_key
        success = self._save_credentials(creds)
        if success:
            logger.info(f"Stored credential in encrypted file for: {provider}")
        return success

    def delete(self, provider: str) -> bool:
        creds = self._load_credentials()
        if provider in creds:
            del creds[provider]
            return self._save_credentials(creds)
        return True

    def list_providers(self) -> list[str]:
        return list(self._load_credentials().keys())


class EnvironmentBackend(CredentialBackend):
    """Environment variable fallback (least secure, but always available)"""

    ENV_VAR_MAP = {
        "google": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
        "groq": ("GROQ_API_KEY",),
        "openrouter": ("OPENROUTER_API_KEY",),
    }

    @property
    def is_available(self) -> bool:
        return True

    def _get_env_vars(self, provider: str) -> tuple[str, ...]:
        return self.ENV_VAR_MAP.get(provider.lower(), (f"{provider.upper()}_API_KEY",))

    def get(self, provider: str) -> str | None:
        for env_var in self._get_env_vars(provider):
            value = os.environ.get(env_var)
            if value:
                return value
        return None

    def set(self, provider: str, api_key: str) -> bool:
        # Can't persistently set environment variables
        os.environ[self._get_env_vars(provider)[0]] = api_key
        logger.warning(f"Set API key in environment (non-persistent) for: {provider}")
        return True

    def delete(self, provider: str) -> bool:
        for env_var in self._get_env_vars(provider):
            os.environ.pop(env_var, None)
        return True

    def list_providers(self) -> list[str]:
        return [p for p in self.ENV_VAR_MAP if self.get(p)]


class CredentialManager:
    """
    Main credential manager with fallback chain:
    1. System keyring (most secure)
    2. Encrypted file (secure, portable)
    3. Environment variables (fallback)
    """

    def __init__(self, backends: list[CredentialBackend] | None = None):
        if backends is None:
            backends = [KeyringBackend(), EncryptedFileBackend(), EnvironmentBackend()]
        self._backends = backends
        self._cache: dict[str, APICredential] = {}
        self._validate_security()

    def _validate_security(self) -> None:
        available = [type(b).__name__ for b in self._backends if b.is_available]
        logger.info(f"Available credential backends: {available}")

        if not any(
            isinstance(b, (KeyringBackend, EncryptedFileBackend)) and b.is_available
            for b in self._backends
        ):
            logger.warning(
                "No secure credential storage available; "
                "falling back to environment variables."
            )

    def get_credential(self, provider: str) -> APICredential | None:
        """
        Retrieve API credential, checking backends in priority order.
        Results are cached for performance.
        """
        provider = provider.lower()

        if provider in self._cache:
            return self._cache[provider]

        for backend in self._backends:
            if not backend.is_available:
                continue

            api_key = backend.get(provider)
            if api_key:
                credential = APICredential(provider=provider, _key=api_key)
                self._cache[provider] = credential
                logger.debug(
                    f"Retrieved credential for {provider} from {type(backend).__name__}"
                )
                return credential

        logger.debug(f"No credential found for provider: {provider}")
        return None

    def set_credential(self, provider: str, api_key: str) -> bool:
        """Store API credential in the most secure available backend."""
        provider = provider.lower()

        if not api_key or len(api_key) < 10:
            logger.error("Invalid API key: too short")
            return False

        for backend in self._backends:
            if backend.is_available and not isinstance(backend, EnvironmentBackend):
                if backend.set(provider, api_key):
                    self._cache.pop(provider, None)
                    return True

        env_backend = self._backends[-1]
        self._cache.pop(provider, None)
        return env_backend.set(provider, api_key)

    def delete_credential(self, provider: str) -> bool:
        """Remove credential from all backends"""
        provider = provider.lower()
        self._cache.pop(provider, None)

        success = True
        for backend in self._backends:
            if backend.is_available:
                success = backend.delete(provider) and success
        return success

    def list_configured_providers(self) -> list[str]:
        providers: set[str] = set()
        for backend in self._backends:
            if backend.is_available:
                providers.update(backend.list_providers())
        return sorted(providers)

    def get_api_key(self, provider: str) -> str | None:
        cred = self.get_credential(provider)
        return cred.get_key() if cred else None

    def clear_cache(self) -> None:
        self._cache.clear()


class CredentialSet:
    """
    Read-only per-request snapshot: provider name -> secret, or absence.
    """

    def __init__(self, secrets: Mapping[str, str | None] | None = None):
        cleaned = {
            provider.lower(): secret
            for provider, secret in (secrets or {}).items()
            if secret
        }
        self._secrets: Mapping[str, str] = MappingProxyType(cleaned)

    @classmethod
    def resolve(
        cls,
        api_keys: Mapping[str, str] | None = None,
        manager: CredentialManager | None = None,
        providers: Iterable[str] = KNOWN_PROVIDERS,
    ) -> "CredentialSet":
        """
        Snapshot secrets for `providers`: per-user keys first, then the
        credential store.
        """
        api_keys = {k.lower(): v for k, v in (api_keys or {}).items()}
        secrets: dict[str, str | None] = {}
        for provider in providers:
            secret = api_keys.get(provider)
            if not secret and manager is not None:
                secret = manager.get_api_key(provider)
            secrets[provider] = secret
        return cls(secrets)

    def get(self, provider: str) -> str | None:
        return self._secrets.get(provider.lower())

    def has(self, provider: str) -> bool:
        return provider.lower() in self._secrets

    def providers(self) -> list[str]:
        return sorted(self._secrets)

    def __repr__(self) -> str:
        return f"CredentialSet(providers={self.providers()})"


# Global singleton instance
_manager: CredentialManager | None = None


def get_credential_manager() -> CredentialManager:
    """Get the global credential manager instance"""
    global _manager
    if _manager is None:
        _manager = CredentialManager()
    return _manager


def get_api_key(provider: str) -> str | None:
    return get_credential_manager().get_api_key(provider)


def set_api_key(provider: str, api_key: str) -> bool:
    return get_credential_manager().set_credential(provider, api_key)


def configure_credentials_interactive() -> None:
    """Interactive CLI for configuring API credentials"""
    print("\nJEE AI Credential Configuration\n")
    print("=" * 50)

    manager = get_credential_manager()

    providers = [
        ("google", "Google (Gemini 2.5, Gemma 3) - required"),
        ("groq", "Groq (Llama 3.3, DeepSeek R1 Distill, Qwen 3)"),
        ("openrouter", "OpenRouter (Mistral Nemo, Qwen Coder, DeepSeek R1)"),
    ]

    for provider_id, provider_name in providers:
        existing = manager.get_credential(provider_id)
        status = "configured" if existing else "not set"
        print(f"\n{provider_name}: [{status}]")

        response = input(f"Configure {provider_id}? (y/N/clear): ").strip().lower()

        if response == "clear":
            manager.delete_credential(provider_id)
            print(f"  -> Cleared {provider_id} credentials")
        elif response == "y":
            api_key = getpass.getpass(f"  Enter API key for {provider_id}: ")
            if api_key:
                if manager.set_credential(provider_id, api_key):
                    print(f"  -> Saved {provider_id} credentials securely")
                else:
                    print(f"  -> Failed to save {provider_id} credentials")

    print("\n" + "=" * 50)
    print("Configuration complete!")
    print(f"Configured providers: {manager.list_configured_providers()}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    configure_credentials_interactive()
