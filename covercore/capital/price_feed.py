"""PriceFeedOracle — курсы активов к ETH (18 decimals).

Источник курса для каждого актива — aggregator с последним ответом:
- ETH-деноминированный aggregator: ответ уже является курсом к ETH
- USD-деноминированный aggregator: курс = asset_usd * 1e18 // eth_usd
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from covercore.core.errors import UnknownAssetError
from covercore.core.math.fixed_point import ONE_ETHER, validate_positive_int

logger = logging.getLogger(__name__)

ETH = "ETH"


class AggregatorType(str, Enum):
    ETH = "ETH"
    USD = "USD"


class Aggregator:
    """Источник последнего ответа (аналог Chainlink aggregator)."""

    def __init__(self, latest_answer: int, decimals: int = 18):
        self.decimals = decimals
        self._latest_answer = latest_answer

    def latest_answer(self) -> int:
        return self._latest_answer

    def set_latest_answer(self, answer: int) -> None:
        validate_positive_int(answer, "answer")
        self._latest_answer = answer


@dataclass(frozen=True)
class AssetFeed:
    aggregator: Aggregator
    aggregator_type: AggregatorType
    decimals: int = 18


class PriceFeedOracle:
    """Oracle курсов к ETH.

    Args:
        feeds: asset → AssetFeed
        eth_usd_aggregator: ETH/USD aggregator для USD-деноминированных активов
    """

    def __init__(
        self,
        feeds: dict[str, AssetFeed],
        eth_usd_aggregator: Optional[Aggregator] = None,
    ):
        usd_assets = [a for a, f in feeds.items() if f.aggregator_type == AggregatorType.USD]
        if usd_assets and eth_usd_aggregator is None:
            raise ValueError(f"ETH/USD aggregator is required for USD feeds: {usd_assets}")

        self._feeds = dict(feeds)
        self._eth_usd_aggregator = eth_usd_aggregator

    def assets(self) -> list[str]:
        return [ETH, *self._feeds]

    def get_asset_to_eth_rate(self, asset: str) -> int:
        """Курс актива к ETH (ETH wei за одну целую единицу актива).

        Raises:
            UnknownAssetError: для актива нет aggregator'а
        """
        if asset == ETH:
            return ONE_ETHER

        feed = self._feeds.get(asset)
        if feed is None:
            raise UnknownAssetError()

        if feed.aggregator_type == AggregatorType.ETH:
            return feed.aggregator.latest_answer()

        # USD aggregator: пересчёт через ETH/USD, decimals ответов выравниваются
        eth_usd = self._eth_usd_aggregator
        return (
            feed.aggregator.latest_answer()
            * 10**eth_usd.decimals
            * ONE_ETHER
            // (eth_usd.latest_answer() * 10**feed.aggregator.decimals)
        )

    def get_asset_for_eth(self, asset: str, eth_in: int) -> int:
        """Количество актива (в его decimals) за eth_in ETH wei."""
        feed = self._feeds.get(asset)
        decimals = feed.decimals if feed is not None else 18
        return eth_in * 10**decimals // self.get_asset_to_eth_rate(asset)

    def get_eth_for_asset(self, asset: str, amount: int) -> int:
        """ETH wei за amount актива (в его decimals)."""
        feed = self._feeds.get(asset)
        decimals = feed.decimals if feed is not None else 18
        return amount * self.get_asset_to_eth_rate(asset) // 10**decimals
