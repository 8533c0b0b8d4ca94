"""Capital Pool — активы протокола, цена NXM, покупка/продажа токенов.

Формула spot price (bonding curve от MCR ratio):

    mcr_ratio  = total_asset_value * 10^MCR_RATIO_DECIMALS // mcr_eth
    spot_price = A + mcr_eth * mcr_ratio^TOKEN_EXPONENT // C // 10^(TOKEN_EXPONENT * MCR_RATIO_DECIMALS)

Все value-flow операции (buy_nxm, sell_nxm) закрыты emergency pause.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from covercore.capital.price_feed import ETH, PriceFeedOracle
from covercore.core.domain.registry import normalize_address
from covercore.core.errors import SlippageError
from covercore.core.math.fixed_point import ONE_ETHER, validate_non_negative_int, validate_positive_int
from covercore.registry.pause import only_internal, when_not_paused

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpotPriceConfig:
    """Константы bonding curve."""

    constant_a: int = 1028 * 10**13
    constant_c: int = 5_800_000
    token_exponent: int = 4
    mcr_ratio_decimals: int = 4


DEFAULT_SPOT_PRICE_CONFIG = SpotPriceConfig()


def calculate_mcr_ratio(total_asset_value: int, mcr_eth: int, mcr_ratio_decimals: int = 4) -> int:
    """MCR ratio с mcr_ratio_decimals знаками (10_000 = 100%).

    Raises:
        ZeroDivisionError: mcr_eth == 0
    """
    return total_asset_value * 10**mcr_ratio_decimals // mcr_eth


def calculate_token_spot_price(
    total_asset_value: int,
    mcr_eth: int,
    config: SpotPriceConfig = DEFAULT_SPOT_PRICE_CONFIG,
) -> int:
    """
    Spot price NXM в ETH wei.

    Args:
        total_asset_value: Стоимость активов пула (ETH wei)
        mcr_eth: Minimum capital requirement (ETH wei)
        config: Константы bonding curve

    Returns:
        Цена 1 NXM в ETH wei

    Raises:
        ZeroDivisionError: mcr_eth == 0 (не подменяется fallback-значением)
    """
    validate_non_negative_int(total_asset_value, "total_asset_value")
    validate_non_negative_int(mcr_eth, "mcr_eth")

    mcr_ratio = calculate_mcr_ratio(total_asset_value, mcr_eth, config.mcr_ratio_decimals)
    precision = 10 ** (config.token_exponent * config.mcr_ratio_decimals)

    return (
        mcr_eth * mcr_ratio**config.token_exponent
        // config.constant_c
        // precision
        + config.constant_a
    )


class Pool:
    """Capital pool.

    Args:
        master: реестр (для pause и internal-авторизации)
        oracle: курсы активов к ETH
        mcr_eth: начальный MCR (ETH wei)
        address: адрес пула
        config: константы bonding curve
    """

    def __init__(
        self,
        master,
        oracle: PriceFeedOracle,
        mcr_eth: int,
        address: str,
        config: Optional[SpotPriceConfig] = None,
    ):
        self.master = master
        self.oracle = oracle
        self.address = normalize_address(address)
        self.config = config or DEFAULT_SPOT_PRICE_CONFIG

        self._mcr_eth = mcr_eth
        self._balances: dict[str, int] = {}
        self._nxm_balances: dict[str, int] = {}
        self._nxm_supply = 0

    # =========================================================================
    # VIEWS
    # =========================================================================

    @property
    def mcr_eth(self) -> int:
        return self._mcr_eth

    @property
    def nxm_supply(self) -> int:
        return self._nxm_supply

    def balance_of(self, asset: str) -> int:
        return self._balances.get(asset, 0)

    def nxm_balance_of(self, member: str) -> int:
        return self._nxm_balances.get(normalize_address(member), 0)

    def get_pool_value_in_eth(self) -> int:
        return sum(
            self.oracle.get_eth_for_asset(asset, amount)
            for asset, amount in self._balances.items()
        )

    def calculate_token_spot_price(self, total_asset_value: int, mcr_eth: int) -> int:
        return calculate_token_spot_price(total_asset_value, mcr_eth, self.config)

    def get_token_price(self) -> int:
        """Текущая цена NXM в ETH wei."""
        return self.calculate_token_spot_price(self.get_pool_value_in_eth(), self._mcr_eth)

    def get_token_price_in_asset(self, asset: str) -> int:
        """Цена 1 NXM в единицах актива.

        Raises:
            UnknownAssetError: актив неизвестен oracle
        """
        price_in_eth = self.get_token_price()
        if asset == ETH:
            return price_in_eth
        return self.oracle.get_asset_for_eth(asset, price_in_eth)

    # =========================================================================
    # INTERNAL OPERATIONS
    # =========================================================================

    def deposit(self, asset: str, amount: int) -> None:
        """Пополнение пула (капитал, взносы)."""
        validate_positive_int(amount, "amount")
        self.oracle.get_asset_to_eth_rate(asset)
        self._balances[asset] = self._balances.get(asset, 0) + amount

    @only_internal
    def update_mcr_eth(self, mcr_eth: int, caller: str) -> None:
        validate_non_negative_int(mcr_eth, "mcr_eth")
        logger.info("MCR updated %s -> %s", self._mcr_eth, mcr_eth)
        self._mcr_eth = mcr_eth

    @only_internal
    def receive_premium(self, asset: str, amount: int, caller: str) -> None:
        """Зачисление премии от внутреннего контракта (Cover)."""
        self.deposit(asset, amount)

    @only_internal
    def send_payout(self, asset: str, amount: int, payee: str, caller: str) -> None:
        """Выплата по claim.

        Raises:
            ValueError: в пуле недостаточно актива
        """
        validate_positive_int(amount, "amount")
        balance = self.balance_of(asset)
        if amount > balance:
            raise ValueError(f"insufficient {asset} in pool: {balance} < {amount}")
        self._balances[asset] = balance - amount
        logger.info("Payout sent asset=%s amount=%s payee=%s", asset, amount, payee)

    @only_internal
    def mint_nxm(self, member: str, amount: int, caller: str) -> None:
        self._mint(member, amount)

    # =========================================================================
    # TOKEN BUY / SELL
    # =========================================================================

    @when_not_paused
    def buy_nxm(self, eth_in: int, min_tokens_out: int, caller: str) -> int:
        """Покупка NXM за ETH по spot price.

        Raises:
            SystemPausedError: система на паузе
            SlippageError: tokens_out < min_tokens_out
        """
        validate_positive_int(eth_in, "eth_in")

        tokens_out = eth_in * ONE_ETHER // self.get_token_price()
        if tokens_out < min_tokens_out:
            raise SlippageError(f"tokens out {tokens_out} is less than minimum {min_tokens_out}")

        self._balances[ETH] = self.balance_of(ETH) + eth_in
        self._mint(caller, tokens_out)

        logger.info("NXM bought member=%s eth_in=%s nxm_out=%s", caller, eth_in, tokens_out)
        return tokens_out

    @when_not_paused
    def sell_nxm(self, tokens_in: int, min_eth_out: int, caller: str) -> int:
        """Продажа NXM за ETH по spot price.

        Raises:
            SystemPausedError: система на паузе
            SlippageError: eth_out < min_eth_out
            ValueError: недостаточно NXM у продавца или ETH в пуле
        """
        validate_positive_int(tokens_in, "tokens_in")

        member = normalize_address(caller)
        balance = self._nxm_balances.get(member, 0)
        if tokens_in > balance:
            raise ValueError(f"insufficient NXM balance: {balance} < {tokens_in}")

        eth_out = tokens_in * self.get_token_price() // ONE_ETHER
        if eth_out < min_eth_out:
            raise SlippageError(f"eth out {eth_out} is less than minimum {min_eth_out}")
        if eth_out > self.balance_of(ETH):
            raise ValueError(f"insufficient ETH in pool: {self.balance_of(ETH)} < {eth_out}")

        self._nxm_balances[member] = balance - tokens_in
        self._nxm_supply -= tokens_in
        self._balances[ETH] = self.balance_of(ETH) - eth_out

        logger.info("NXM sold member=%s nxm_in=%s eth_out=%s", member, tokens_in, eth_out)
        return eth_out

    def _mint(self, member: str, amount: int) -> None:
        member = normalize_address(member)
        self._nxm_balances[member] = self._nxm_balances.get(member, 0) + amount
        self._nxm_supply += amount
