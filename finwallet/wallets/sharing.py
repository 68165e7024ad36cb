"""
Wallet Sharing

An owner invites another user by email. The invitation is PENDING until
the grantee accepts or rejects it:

    PENDING → ACCEPTED   (grantee gets read/write access)
    PENDING → REJECTED   (terminal; never pending again)

At most one non-rejected share exists per (wallet, email). Every creation
and response sends a share_invite alert to the shared wallet's feed, recorded
under the acting user.

Known limitation: alerts are scoped to a wallet, not a person, so a grantee
cannot see the invite alert before accepting. Pending invitations reach
the grantee through `pending_shares`; the feed alert is for the wallet's
members.
"""

from typing import Optional
from uuid import UUID

import structlog

from finwallet.alerts.dispatcher import NotificationDispatcher
from finwallet.alerts.triggers import share_alert
from finwallet.audit import AuditLogger
from finwallet.models.ledger import ShareStatus, Wallet, WalletShare
from finwallet.services.storage import ShareStorageInterface, WalletStorageInterface
from finwallet.session import Session
from finwallet.validation import InputValidator, ensure_valid


logger = structlog.get_logger(__name__)


class ShareError(Exception):
    """A share operation that the current user may not perform."""
    pass


class WalletSharingService:
    """Invitations, responses and access checks for shared wallets."""

    def __init__(
        self,
        shares: ShareStorageInterface,
        wallets: WalletStorageInterface,
        dispatcher: Optional[NotificationDispatcher] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._shares = shares
        self._wallets = wallets
        self._dispatcher = dispatcher
        self._audit = audit_logger or AuditLogger()

    async def share_wallet(
        self,
        session: Session,
        wallet_id: UUID,
        email: str,
    ) -> WalletShare:
        """
        Invite `email` to the wallet.

        Raises:
            ValidationError: If the email is malformed
            ShareError: If the wallet is not owned by the user, the email is
                the user's own, or an active share already exists
        """
        ensure_valid(InputValidator.validate_email(email))
        email = email.strip().lower()

        wallet = await self._wallets.get_wallet(wallet_id)
        if wallet is None or wallet.owner_user_id != session.user_id:
            raise ShareError("Only the owner can share this wallet")
        if email == session.user_email:
            raise ShareError("You cannot share a wallet with yourself")

        existing = await self._shares.list_shares(wallet_id=wallet_id, grantee_email=email)
        if any(share.is_active for share in existing):
            raise ShareError(f"Wallet is already shared with {email}")

        share = WalletShare(
            wallet_id=wallet_id,
            owner_user_id=session.user_id,
            owner_name=session.display_name,
            grantee_email=email,
            created_at=session.now(),
        )
        await self._shares.save_share(share)
        await self._audit.log_share_created(share.id, wallet_id, session.user_id, email)
        await self._notify(session, share)
        return share

    async def accept_share(self, session: Session, share_id: UUID) -> Optional[WalletShare]:
        return await self._respond(session, share_id, ShareStatus.ACCEPTED)

    async def reject_share(self, session: Session, share_id: UUID) -> Optional[WalletShare]:
        return await self._respond(session, share_id, ShareStatus.REJECTED)

    async def _respond(
        self,
        session: Session,
        share_id: UUID,
        status: ShareStatus,
    ) -> Optional[WalletShare]:
        share = await self._shares.get_share(share_id)
        if share is None:
            logger.warning("share_not_found", share_id=str(share_id), user_id=session.user_id)
            await self._audit.log_entity_not_found("share", share_id, session.user_id)
            return None
        if share.grantee_email != session.user_email:
            raise ShareError("Only the invited user can respond to this share")
        if share.status != ShareStatus.PENDING:
            raise ShareError(f"Share was already {share.status.value}")

        share = share.model_copy(update={"status": status, "responded_at": session.now()})
        await self._shares.update_share(share)
        await self._audit.log_share_responded(share.id, share.wallet_id, session.user_id, status.value)
        await self._notify(session, share)
        return share

    async def remove_share(self, session: Session, share_id: UUID) -> bool:
        """Owner revokes, or grantee leaves, a share."""
        share = await self._shares.get_share(share_id)
        if share is None:
            logger.warning("share_not_found", share_id=str(share_id), user_id=session.user_id)
            await self._audit.log_entity_not_found("share", share_id, session.user_id)
            return False
        if session.user_id != share.owner_user_id and session.user_email != share.grantee_email:
            raise ShareError("Only the owner or the grantee can remove this share")

        removed = await self._shares.delete_share(share_id)
        await self._audit.log_share_removed(share_id, share.wallet_id, session.user_id)
        return removed

    async def _notify(self, session: Session, share: WalletShare) -> None:
        if self._dispatcher is None:
            return
        candidate = share_alert(
            share_id=share.id,
            status=share.status.value,
            sender_name=session.display_name,
            wallet_id=share.wallet_id,
        )
        await self._dispatcher.create_many(session, [candidate])

    async def pending_shares(self, session: Session) -> list[WalletShare]:
        """Invitations waiting for the current user's answer."""
        return await self._shares.list_shares(
            grantee_email=session.user_email, status=ShareStatus.PENDING
        )

    async def sent_pending_shares(self, session: Session) -> list[WalletShare]:
        """Invitations the current user sent that are still unanswered."""
        return await self._shares.list_shares(
            owner_user_id=session.user_id, status=ShareStatus.PENDING
        )

    async def active_shares(self, session: Session) -> list[WalletShare]:
        """Accepted shares of the current user's wallets."""
        return await self._shares.list_shares(
            owner_user_id=session.user_id, status=ShareStatus.ACCEPTED
        )

    async def shared_wallets(self, session: Session) -> list[Wallet]:
        """Wallets other users shared with the current user."""
        accepted = await self._shares.list_shares(
            grantee_email=session.user_email, status=ShareStatus.ACCEPTED
        )
        wallets = []
        for share in accepted:
            wallet = await self._wallets.get_wallet(share.wallet_id)
            if wallet is None:
                logger.warning("shared_wallet_missing", wallet_id=str(share.wallet_id))
                continue
            wallets.append(wallet)
        return wallets

    async def can_access(self, session: Session, wallet_id: UUID) -> bool:
        """Owner, or grantee of an accepted share."""
        wallet = await self._wallets.get_wallet(wallet_id)
        if wallet is None:
            return False
        if wallet.owner_user_id == session.user_id:
            return True
        shares = await self._shares.list_shares(
            wallet_id=wallet_id,
            grantee_email=session.user_email,
            status=ShareStatus.ACCEPTED,
        )
        return bool(shares)
