"""
Wallet Service

A user owns between one and `max_wallets_per_user` wallets (3 by default).
A default wallet is created the first time a user with no wallet lists
them, and the last remaining wallet cannot be deleted.

Selecting a wallet the user does not own requires an accepted share; the
sharing service is consulted for that when one is wired in.
"""

from typing import Optional
from uuid import UUID

import structlog

from finwallet.audit import AuditLogger
from finwallet.config import EngineSettings
from finwallet.models.audit import AuditEventType
from finwallet.models.ledger import Wallet
from finwallet.services.storage import WalletStorageInterface
from finwallet.session import Session
from finwallet.validation import InputValidator, ValidationError, ensure_valid
from finwallet.wallets.sharing import WalletSharingService


logger = structlog.get_logger(__name__)


class WalletLimitError(Exception):
    """A wallet cannot be created or deleted without breaking the 1..max rule."""
    pass


class WalletService:
    """Owner-side wallet management."""

    def __init__(
        self,
        store: WalletStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
        sharing: Optional[WalletSharingService] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or EngineSettings()
        self._sharing = sharing

    async def list_wallets(self, session: Session) -> list[Wallet]:
        """The user's wallets, oldest first. Creates the default one if none exist."""
        wallets = await self._store.list_wallets(session.user_id)
        if not wallets:
            wallets = [await self.create_wallet(session, self._settings.default_wallet_name)]
        return wallets

    async def select_wallet(
        self,
        session: Session,
        wallet_id: Optional[UUID] = None,
    ) -> Session:
        """
        Return a session with a wallet selected.

        `wallet_id` may be an owned wallet or one shared with the user through
        an accepted share. Anything else (including None) falls back to the
        first owned wallet.
        """
        wallets = await self.list_wallets(session)
        for wallet in wallets:
            if wallet.id == wallet_id:
                return session.with_wallet(wallet.id)
        if wallet_id is not None:
            if self._sharing is not None and await self._sharing.can_access(session, wallet_id):
                return session.with_wallet(wallet_id)
            logger.warning("wallet_not_found", wallet_id=str(wallet_id), user_id=session.user_id)
        return session.with_wallet(wallets[0].id)

    async def _check_name(self, session: Session, name: str) -> None:
        try:
            ensure_valid(InputValidator.validate_wallet_name(name))
        except ValidationError as e:
            await self._audit.log_validation_failed(
                "wallet",
                [issue.model_dump() for issue in e.issues],
                session.user_id,
            )
            raise

    async def create_wallet(self, session: Session, name: str) -> Wallet:
        """
        Raises:
            ValidationError: If the name is empty or too long
            WalletLimitError: If the user already owns the maximum number of wallets
        """
        await self._check_name(session, name)
        existing = await self._store.list_wallets(session.user_id)
        limit = self._settings.max_wallets_per_user
        if len(existing) >= limit:
            raise WalletLimitError(f"Maximum of {limit} wallets reached")

        wallet = Wallet(
            name=name,
            owner_user_id=session.user_id,
            created_at=session.now(),
        )
        await self._store.save_wallet(wallet)
        await self._audit.log_wallet_changed(
            AuditEventType.WALLET_CREATED, wallet.id, session.user_id, wallet.name
        )
        return wallet

    async def _owned(self, session: Session, wallet_id: UUID) -> Optional[Wallet]:
        wallet = await self._store.get_wallet(wallet_id)
        if wallet is None or wallet.owner_user_id != session.user_id:
            logger.warning("wallet_not_found", wallet_id=str(wallet_id), user_id=session.user_id)
            await self._audit.log_entity_not_found("wallet", wallet_id, session.user_id)
            return None
        return wallet

    async def rename_wallet(
        self,
        session: Session,
        wallet_id: UUID,
        name: str,
    ) -> Optional[Wallet]:
        """
        Rename an owned wallet. Unknown wallets are a no-op returning None.

        Raises:
            ValidationError: If the new name is empty or too long
        """
        await self._check_name(session, name)
        wallet = await self._owned(session, wallet_id)
        if wallet is None:
            return None

        renamed = wallet.model_copy(update={"name": name.strip()})
        await self._store.update_wallet(renamed)
        await self._audit.log_wallet_changed(
            AuditEventType.WALLET_RENAMED, wallet_id, session.user_id, renamed.name
        )
        return renamed

    async def delete_wallet(self, session: Session, wallet_id: UUID) -> bool:
        """
        Delete an owned wallet.

        Raises:
            WalletLimitError: If it is the user's only wallet
        """
        wallet = await self._owned(session, wallet_id)
        if wallet is None:
            return False

        wallets = await self._store.list_wallets(session.user_id)
        if len(wallets) <= 1:
            raise WalletLimitError("Cannot delete the only wallet")

        deleted = await self._store.delete_wallet(wallet_id)
        await self._audit.log_wallet_changed(
            AuditEventType.WALLET_DELETED, wallet_id, session.user_id, wallet.name
        )
        return deleted
