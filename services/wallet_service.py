"""Users and the managed wallets the bot signs with."""

from __future__ import annotations

import logging
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from dal.user_dal import UserDAL
from dal.wallet_dal import WalletDAL
from models.records import UserRecord, WalletRecord
from utils.wallet_crypto import SecretCipher

logger = logging.getLogger(__name__)


class WalletService:
    """Resolve users and their encrypted signing keys."""

    def __init__(self, users: UserDAL, wallets: WalletDAL, cipher: SecretCipher) -> None:
        self.users = users
        self.wallets = wallets
        self.cipher = cipher

    async def ensure_user(self, telegram_id: int, username: Optional[str] = None) -> UserRecord:
        return await self.users.get_or_create(telegram_id, username)

    async def find_wallet(self, telegram_id: int) -> Optional[WalletRecord]:
        return await self.wallets.get_by_telegram_id(telegram_id)

    async def create_wallet(self, telegram_id: int, username: Optional[str] = None) -> WalletRecord:
        """Return the user's wallet, generating and storing one if needed."""
        user = await self.ensure_user(telegram_id, username)
        existing = await self.wallets.get_by_user_id(user.id)
        if existing is not None:
            return existing
        account = Account.create()
        record = WalletRecord(
            id=None,
            user_id=user.id,
            address=account.address,
            encrypted_secret=self.cipher.encrypt(account.key.hex()),
        )
        stored = await self.wallets.create_wallet(record)
        logger.info("Wallet %s ready for user %s", stored.address, user.id)
        return stored

    def signer(self, wallet: WalletRecord) -> LocalAccount:
        """Return the account able to sign for `wallet`."""
        return Account.from_key(self.cipher.decrypt(wallet.encrypted_secret))
