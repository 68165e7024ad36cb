"""Tests for wallet management and sharing."""

import pytest
from uuid import uuid4

from finwallet.config import EngineSettings
from finwallet.models.ledger import ShareStatus
from finwallet.session import Session
from finwallet.validation import ValidationError
from finwallet.wallets import (
    ShareError,
    WalletLimitError,
    WalletService,
    WalletSharingService,
)


@pytest.fixture
def wallets(store, audit_logger, settings, sharing):
    return WalletService(store, audit_logger, settings, sharing)


@pytest.fixture
def owner(clock):
    return Session(user_id="owner", user_email="owner@example.com", user_name="Robin", clock=clock)


@pytest.fixture
def grantee(clock):
    return Session(user_id="friend", user_email="friend@example.com", user_name="Sam", clock=clock)


class TestWalletService:
    """Tests for wallet creation, renaming and deletion."""

    @pytest.mark.asyncio
    async def test_default_wallet_created_on_first_list(self, wallets, owner):
        first = await wallets.list_wallets(owner)
        second = await wallets.list_wallets(owner)
        assert [w.name for w in first] == ["Main Wallet"]
        assert first == second

    @pytest.mark.asyncio
    async def test_wallet_limit(self, wallets, owner):
        for name in ("One", "Two", "Three"):
            await wallets.create_wallet(owner, name)
        with pytest.raises(WalletLimitError):
            await wallets.create_wallet(owner, "Four")

    @pytest.mark.asyncio
    async def test_limit_is_configurable(self, store, owner):
        service = WalletService(store, settings=EngineSettings(max_wallets_per_user=1))
        await service.create_wallet(owner, "Only")
        with pytest.raises(WalletLimitError):
            await service.create_wallet(owner, "Second")

    @pytest.mark.asyncio
    async def test_cannot_delete_only_wallet(self, wallets, owner):
        [wallet] = await wallets.list_wallets(owner)
        with pytest.raises(WalletLimitError):
            await wallets.delete_wallet(owner, wallet.id)

    @pytest.mark.asyncio
    async def test_delete_second_wallet(self, wallets, owner, store):
        await wallets.list_wallets(owner)
        extra = await wallets.create_wallet(owner, "Holidays")
        assert await wallets.delete_wallet(owner, extra.id)
        assert await store.get_wallet(extra.id) is None

    @pytest.mark.asyncio
    async def test_rename(self, wallets, owner, store):
        wallet = await wallets.create_wallet(owner, "Old")
        renamed = await wallets.rename_wallet(owner, wallet.id, "New")
        assert renamed.name == "New"
        assert (await store.get_wallet(wallet.id)).name == "New"

    @pytest.mark.asyncio
    async def test_rename_someone_elses_wallet_is_noop(self, wallets, owner, grantee):
        wallet = await wallets.create_wallet(owner, "Mine")
        assert await wallets.rename_wallet(grantee, wallet.id, "Stolen") is None

    @pytest.mark.asyncio
    async def test_select_wallet_falls_back_to_first(self, wallets, owner):
        [wallet] = await wallets.list_wallets(owner)
        selected = await wallets.select_wallet(owner, uuid4())
        assert selected.wallet_id == wallet.id

    @pytest.mark.asyncio
    async def test_select_shared_wallet(self, wallets, sharing, owner, grantee):
        family = await wallets.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, family.id, grantee.user_email)
        await sharing.accept_share(grantee, share.id)

        selected = await wallets.select_wallet(grantee, family.id)
        assert selected.wallet_id == family.id

    @pytest.mark.asyncio
    async def test_select_pending_share_falls_back(self, wallets, sharing, owner, grantee):
        family = await wallets.create_wallet(owner, "Family")
        await sharing.share_wallet(owner, family.id, grantee.user_email)

        selected = await wallets.select_wallet(grantee, family.id)
        [own] = await wallets.list_wallets(grantee)
        assert selected.wallet_id == own.id

    @pytest.mark.asyncio
    async def test_select_without_sharing_ignores_shares(self, store, sharing, owner, grantee):
        service = WalletService(store)
        family = await service.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, family.id, grantee.user_email)
        await sharing.accept_share(grantee, share.id)

        selected = await service.select_wallet(grantee, family.id)
        assert selected.wallet_id != family.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "w" * 101])
    async def test_create_rejects_bad_names(self, wallets, owner, store, name):
        with pytest.raises(ValidationError) as exc_info:
            await wallets.create_wallet(owner, name)
        assert exc_info.value.fields == ["name"]
        assert await store.list_wallets(owner.user_id) == []

    @pytest.mark.asyncio
    async def test_rename_rejects_overlong_name(self, wallets, owner, store):
        wallet = await wallets.create_wallet(owner, "Old")
        with pytest.raises(ValidationError):
            await wallets.rename_wallet(owner, wallet.id, "w" * 101)
        assert (await store.get_wallet(wallet.id)).name == "Old"


class TestSharing:
    """Tests for the share lifecycle."""

    @pytest.mark.asyncio
    async def test_share_is_pending(self, sharing, wallets, owner):
        wallet = await wallets.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, wallet.id, "Friend@Example.com")
        assert share.status == ShareStatus.PENDING
        assert share.grantee_email == "friend@example.com"
        assert share.owner_name == "Robin"

    @pytest.mark.asyncio
    async def test_accept_makes_wallet_visible(self, sharing, wallets, owner, grantee):
        wallet = await wallets.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, wallet.id, grantee.user_email)

        assert [s.id for s in await sharing.pending_shares(grantee)] == [share.id]
        assert [s.id for s in await sharing.sent_pending_shares(owner)] == [share.id]
        assert not await sharing.can_access(grantee, wallet.id)

        accepted = await sharing.accept_share(grantee, share.id)

        assert accepted.status == ShareStatus.ACCEPTED
        assert accepted.responded_at is not None
        assert [w.id for w in await sharing.shared_wallets(grantee)] == [wallet.id]
        assert [s.id for s in await sharing.active_shares(owner)] == [share.id]
        assert await sharing.pending_shares(grantee) == []
        assert await sharing.can_access(grantee, wallet.id)

    @pytest.mark.asyncio
    async def test_rejected_share_never_pending_again(self, sharing, wallets, owner, grantee):
        wallet = await wallets.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, wallet.id, grantee.user_email)

        rejected = await sharing.reject_share(grantee, share.id)
        assert rejected.status == ShareStatus.REJECTED
        assert await sharing.pending_shares(grantee) == []
        assert await sharing.shared_wallets(grantee) == []

        with pytest.raises(ShareError):
            await sharing.accept_share(grantee, share.id)
        assert await sharing.pending_shares(grantee) == []

    @pytest.mark.asyncio
    async def test_new_invite_allowed_after_rejection(self, sharing, wallets, owner, grantee):
        wallet = await wallets.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, wallet.id, grantee.user_email)
        await sharing.reject_share(grantee, share.id)

        again = await sharing.share_wallet(owner, wallet.id, grantee.user_email)
        assert again.id != share.id

    @pytest.mark.asyncio
    async def test_one_active_share_per_email(self, sharing, wallets, owner, grantee):
        wallet = await wallets.create_wallet(owner, "Family")
        await sharing.share_wallet(owner, wallet.id, grantee.user_email)
        with pytest.raises(ShareError):
            await sharing.share_wallet(owner, wallet.id, "FRIEND@example.com")

    @pytest.mark.asyncio
    async def test_cannot_share_with_self(self, sharing, wallets, owner):
        wallet = await wallets.create_wallet(owner, "Family")
        with pytest.raises(ShareError):
            await sharing.share_wallet(owner, wallet.id, owner.user_email)

    @pytest.mark.asyncio
    async def test_only_owner_can_share(self, sharing, wallets, owner, grantee):
        wallet = await wallets.create_wallet(owner, "Family")
        with pytest.raises(ShareError):
            await sharing.share_wallet(grantee, wallet.id, "third@example.com")

    @pytest.mark.asyncio
    async def test_invalid_email(self, sharing, wallets, owner):
        wallet = await wallets.create_wallet(owner, "Family")
        with pytest.raises(ValidationError):
            await sharing.share_wallet(owner, wallet.id, "not-an-email")

    @pytest.mark.asyncio
    async def test_only_grantee_can_respond(self, sharing, wallets, owner, grantee):
        wallet = await wallets.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, wallet.id, grantee.user_email)
        with pytest.raises(ShareError):
            await sharing.accept_share(owner, share.id)

    @pytest.mark.asyncio
    async def test_unknown_share_is_noop(self, sharing, grantee):
        assert await sharing.accept_share(grantee, uuid4()) is None
        assert await sharing.remove_share(grantee, uuid4()) is False

    @pytest.mark.asyncio
    async def test_remove_share(self, sharing, wallets, owner, grantee, store):
        wallet = await wallets.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, wallet.id, grantee.user_email)
        await sharing.accept_share(grantee, share.id)

        assert await sharing.remove_share(owner, share.id)
        assert await sharing.shared_wallets(grantee) == []

    @pytest.mark.asyncio
    async def test_share_events_send_alerts(self, sharing, wallets, owner, grantee, store):
        wallet = await wallets.create_wallet(owner, "Family")
        share = await sharing.share_wallet(owner, wallet.id, grantee.user_email)
        await sharing.accept_share(grantee, share.id)

        feed = await store.list_alerts(wallet_id=wallet.id)
        statuses = sorted(alert.data["status"] for alert in feed)
        assert statuses == ["accepted", "pending"]
        assert all(alert.type == "share_invite" for alert in feed)

        by_status = {alert.data["status"]: alert for alert in feed}
        assert by_status["pending"].user_id == owner.user_id
        assert by_status["accepted"].user_id == grantee.user_id

    @pytest.mark.asyncio
    async def test_sharing_without_dispatcher(self, store, wallets, owner, grantee):
        service = WalletSharingService(store, store)
        wallet = await wallets.create_wallet(owner, "Family")
        share = await service.share_wallet(owner, wallet.id, grantee.user_email)
        assert share.status == ShareStatus.PENDING
        assert await store.list_alerts(wallet_id=wallet.id) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
