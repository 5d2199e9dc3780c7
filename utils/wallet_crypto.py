"""Encryption of wallet secrets at rest."""

from cryptography.fernet import Fernet, InvalidToken


class SecretCipher:
    """Fernet wrapper used for the private keys stored in the wallets table."""

    def __init__(self, key: str) -> None:
        if not key:
            raise RuntimeError("WALLET_ENCRYPTION_KEY environment variable is not set")
        try:
            self._fernet = Fernet(key.encode("utf-8"))
        except (ValueError, TypeError) as exc:
            raise RuntimeError("WALLET_ENCRYPTION_KEY is not a valid Fernet key") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")

    def encrypt(self, secret: str) -> str:
        return self._fernet.encrypt(secret.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Stored wallet secret cannot be decrypted with the configured key") from exc
