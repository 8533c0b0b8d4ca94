"""Общие fixtures: развёрнутый протокол (Master, пул капитала, Cover, claims).

Пул капитала настроен так, что TAV == MCR == 5_740_376 ETH, и цена NXM
ровно 1 ETH: 1028e13 + MCR // 5_800_000 == 1e18.
"""

from dataclasses import dataclass

import pytest

from covercore.capital.pool import Pool
from covercore.capital.price_feed import ETH, Aggregator, AggregatorType, AssetFeed, PriceFeedOracle
from covercore.claims.assessment import Assessment
from covercore.claims.claims import IndividualClaims
from covercore.core.domain.product import Product, ProductInitializationParams, ProductType
from covercore.core.domain.registry import ContractType
from covercore.core.domain.units import TRANCHE_DURATION
from covercore.core.math.fixed_point import ONE_DAY, ONE_ETHER
from covercore.cover.cover import Cover
from covercore.registry.master import Master, MasterImplementation
from covercore.staking.pool import StakingPool


def addr(n: int) -> str:
    return "0x" + f"{n:040x}"


T0 = TRANCHE_DURATION * 100
FIRST_TRANCHE = 100
EMERGENCY_ADMIN = addr(0x3)
GV = addr(0x10)
P1 = addr(0x11)
CO = addr(0x12)
CI = addr(0x13)
AS = addr(0x14)
MEMBER = addr(0x50)
OUTSIDER = addr(0x99)

MCR_ETH = 5_740_376 * ONE_ETHER
DAI_TO_ETH_RATE = 5 * 10**14  # 1 DAI = 0.0005 ETH


@dataclass
class Protocol:
    master: Master
    oracle: PriceFeedOracle
    pool: Pool
    cover: Cover
    staking_pool: StakingPool
    assessment: Assessment
    claims: IndividualClaims
    governance: str = GV
    emergency_admin: str = EMERGENCY_ADMIN
    start: int = T0


@pytest.fixture
def oracle():
    return PriceFeedOracle(
        {"DAI": AssetFeed(Aggregator(DAI_TO_ETH_RATE), AggregatorType.ETH)},
    )


@pytest.fixture
def protocol(oracle):
    master = Master(addr(0x1), MasterImplementation(addr(0x2)), EMERGENCY_ADMIN)
    master.initialize(
        ["GV", "P1", "CO", "CI", "AS"],
        [GV, P1, CO, CI, AS],
        [ContractType.REPLACEABLE] * 5,
    )

    pool = Pool(master, oracle, MCR_ETH, P1)
    pool.deposit(ETH, MCR_ETH)

    cover = Cover(master, pool, CO)
    cover.set_product_type(0, ProductType(claim_method=0, grace_period=7 * ONE_DAY), caller=GV)
    cover.set_product(0, Product(product_type=0, initial_price_ratio=2_000), caller=GV)

    staking_pool = StakingPool(pool_id=0, manager=MEMBER, now=T0)
    staking_pool.set_products(
        [ProductInitializationParams(product_id=0, weight=100, initial_price=2_000, target_price=200)],
        now=T0,
    )
    staking_pool.deposit_to(50_000 * ONE_ETHER, FIRST_TRANCHE + 4, now=T0)
    cover.add_staking_pool(staking_pool)

    assessment = Assessment(master, AS)
    claims = IndividualClaims(master, cover, assessment, pool, CI)

    return Protocol(
        master=master,
        oracle=oracle,
        pool=pool,
        cover=cover,
        staking_pool=staking_pool,
        assessment=assessment,
        claims=claims,
    )
