"""Wallet management and sharing package."""

from finwallet.wallets.service import WalletLimitError, WalletService
from finwallet.wallets.sharing import ShareError, WalletSharingService

__all__ = [
    "ShareError",
    "WalletLimitError",
    "WalletService",
    "WalletSharingService",
]
