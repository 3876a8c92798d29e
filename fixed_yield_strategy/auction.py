"""
Fixed Yield Strategy - Auction Handoff.

============================================================
PURPOSE
============================================================
Hands stray reward tokens to the reward auction.

Core tokens (asset, intermediary, wrapper, market, principal)
are never handed off.

============================================================
"""

import logging
from typing import FrozenSet, Optional

from .ledger import TokenLedger
from .types import (
    MarketBinding,
    AuctionKickResult,
    ValidationError,
)
from .adapters.base import AuctionAdapter


logger = logging.getLogger(__name__)


class AuctionHandoff:
    """Validates auctions and kicks reward tokens into them."""

    def __init__(self, ledger: TokenLedger, holder: str, asset: str, intermediary: str):
        self._ledger = ledger
        self._holder = holder
        self._asset = asset
        self._intermediary = intermediary

    async def validate(self, auction: AuctionAdapter) -> None:
        """
        Raises:
            ValidationError: receiver is not the strategy or want is not the asset
        """
        receiver = await auction.receiver()
        want = await auction.want()
        if receiver != self._holder or want != self._asset:
            raise ValidationError(
                f"Auction {auction.address} pays {want} to {receiver}, "
                f"expected {self._asset} to {self._holder}",
                code="VAL_AUCTION_MISMATCH",
            )

    def forbidden_tokens(self, binding: MarketBinding) -> FrozenSet[str]:
        return frozenset({
            self._asset,
            self._intermediary,
            binding.wrapper,
            binding.market_address,
            binding.principal,
        })

    async def kick(
        self,
        token: str,
        auction: Optional[AuctionAdapter],
        binding: MarketBinding,
    ) -> AuctionKickResult:
        """
        Transfer the whole token balance to the auction and kick it.

        Raises:
            ValidationError: Core token, or no auction set
            ExecutionError: Auction has nothing to sell
        """
        if token in self.forbidden_tokens(binding):
            raise ValidationError(
                f"{token} is core-managed and cannot be auctioned",
                code="VAL_FORBIDDEN_TOKEN",
                details={"token": token},
            )
        if auction is None:
            raise ValidationError("No auction configured", code="VAL_NO_AUCTION_CONFIGURED")

        balance = self._ledger.balance_of(token, self._holder)
        self._ledger.transfer(token, self._holder, auction.address, balance)
        available = await auction.kick(token)

        logger.info(f"Kicked {token} into auction {auction.address}: moved {balance}, available {available}")
        return AuctionKickResult(
            token=token,
            auction=auction.address,
            amount_transferred=balance,
            available=available,
        )
