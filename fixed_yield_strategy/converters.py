"""
Fixed Yield Strategy - Asset Converters.

============================================================
PURPOSE
============================================================
Pluggable conversion between the accepted asset and the
intermediary the market trades against.

CONVERTERS:
- IdentityConverter: asset IS the intermediary, no conversion
- ShareTokenConverter: intermediary is the share token of a
  yield-bearing vault holding the asset

All conversions act on the holder's balances in the ledger.

============================================================
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal

from .ledger import TokenLedger
from .types import UNLIMITED, ZERO
from .adapters.base import ShareVaultAdapter


logger = logging.getLogger(__name__)


class AssetConverter(ABC):
    """
    Asset <-> intermediary conversion capability.

    Conversions return the amount received by the holder.
    """

    @property
    @abstractmethod
    def asset(self) -> str:
        pass

    @property
    @abstractmethod
    def intermediary(self) -> str:
        pass

    @property
    def is_identity(self) -> bool:
        """Whether asset and intermediary are the same token."""
        return self.asset == self.intermediary

    @abstractmethod
    async def asset_to_intermediary(self, amount: Decimal) -> Decimal:
        pass

    @abstractmethod
    async def intermediary_to_asset(self, amount: Decimal) -> Decimal:
        pass

    @abstractmethod
    async def price_intermediary_in_asset(self) -> Decimal:
        """Asset units per one intermediary unit."""
        pass


class IdentityConverter(AssetConverter):
    """Default converter: the asset is traded on the market directly."""

    def __init__(self, asset: str):
        self._asset = asset

    @property
    def asset(self) -> str:
        return self._asset

    @property
    def intermediary(self) -> str:
        return self._asset

    async def asset_to_intermediary(self, amount: Decimal) -> Decimal:
        return amount

    async def intermediary_to_asset(self, amount: Decimal) -> Decimal:
        return amount

    async def price_intermediary_in_asset(self) -> Decimal:
        return Decimal("1")


class ShareTokenConverter(AssetConverter):
    """
    Wraps the asset into vault shares.

    The vault is approved once for an unlimited amount of the
    holder's asset.
    """

    def __init__(self, vault: ShareVaultAdapter, ledger: TokenLedger, holder: str):
        self._vault = vault
        self._ledger = ledger
        self._holder = holder
        ledger.approve(vault.asset, holder, vault.address, UNLIMITED)

    @property
    def asset(self) -> str:
        return self._vault.asset

    @property
    def intermediary(self) -> str:
        return self._vault.address

    async def asset_to_intermediary(self, amount: Decimal) -> Decimal:
        if amount == 0:
            return ZERO
        shares = await self._vault.deposit(amount, self._holder, self._holder)
        logger.debug(f"Wrapped {amount} {self.asset} into {shares} shares")
        return shares

    async def intermediary_to_asset(self, amount: Decimal) -> Decimal:
        if amount == 0:
            return ZERO
        assets = await self._vault.redeem(amount, self._holder, self._holder)
        logger.debug(f"Unwrapped {amount} shares into {assets} {self.asset}")
        return assets

    async def price_intermediary_in_asset(self) -> Decimal:
        return await self._vault.convert_to_assets(Decimal("1"))
