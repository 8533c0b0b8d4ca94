"""IndividualClaims — подача claim'ов и выплата по принятым."""

import logging
from dataclasses import dataclass

from covercore.capital.pool import Pool
from covercore.claims.assessment import Assessment, PollStatus
from covercore.core.domain.registry import normalize_address
from covercore.core.errors import ClaimError
from covercore.core.math.fixed_point import ONE_DAY, validate_positive_int
from covercore.cover.cover import Cover
from covercore.registry.pause import when_not_paused

logger = logging.getLogger(__name__)

PAYOUT_REDEMPTION_PERIOD = 30 * ONE_DAY


@dataclass
class Claim:
    claim_id: int
    cover_id: int
    assessment_id: int
    amount: int
    cover_asset: str
    payout_redeemed: bool = False


class IndividualClaims:
    """Claims по отдельным покрытиям."""

    def __init__(
        self,
        master,
        cover: Cover,
        assessment: Assessment,
        capital_pool: Pool,
        address: str,
    ):
        self.master = master
        self.cover = cover
        self.assessment = assessment
        self.capital_pool = capital_pool
        self.address = normalize_address(address)
        self._claims: list[Claim] = []

    def get_claim(self, claim_id: int) -> Claim:
        if not 0 <= claim_id < len(self._claims):
            raise ClaimError(f"claim {claim_id} does not exist")
        return self._claims[claim_id]

    def submit_claim(self, cover_id: int, requested_amount: int, caller: str, now: int) -> int:
        """Подача claim владельцем покрытия.

        Raises:
            ClaimError: не владелец, покрытие истекло, сумма больше покрытия
        """
        validate_positive_int(requested_amount, "requested_amount")
        cover = self.cover.get_cover(cover_id)

        if normalize_address(caller) != normalize_address(cover.owner):
            raise ClaimError("Only the cover owner can submit a claim")
        if now > cover.start + cover.period + cover.grace_period:
            raise ClaimError("Cover is outside the grace period")
        if requested_amount > cover.amount:
            raise ClaimError("Covered amount exceeded")

        assessment_id = self.assessment.start_assessment(caller=self.address, now=now)
        claim = Claim(
            claim_id=len(self._claims),
            cover_id=cover_id,
            assessment_id=assessment_id,
            amount=requested_amount,
            cover_asset=cover.cover_asset,
        )
        self._claims.append(claim)

        logger.info("Claim submitted claim_id=%s cover_id=%s amount=%s", claim.claim_id, cover_id, requested_amount)
        return claim.claim_id

    @when_not_paused
    def redeem_claim_payout(self, claim_id: int, now: int) -> int:
        """Выплата по принятому claim (однократно, после cooldown).

        Returns:
            Выплаченная сумма в cover asset

        Raises:
            SystemPausedError: система на паузе
            ClaimError: claim не принят, cooldown не истёк, окно выплаты
                закрыто или выплата уже произведена
        """
        claim = self.get_claim(claim_id)
        if claim.payout_redeemed:
            raise ClaimError("Payout has already been redeemed")

        if self.assessment.get_poll_status(claim.assessment_id, now) != PollStatus.ACCEPTED:
            raise ClaimError("The claim needs to be accepted")

        poll = self.assessment.get_poll(claim.assessment_id)
        cooldown_end = poll.end + self.assessment.config.payout_cooldown
        if now < cooldown_end:
            raise ClaimError("The claim is in cooldown period")
        if now >= cooldown_end + PAYOUT_REDEMPTION_PERIOD:
            raise ClaimError("The redemption period has expired")

        owner = self.cover.get_cover(claim.cover_id).owner
        self.capital_pool.send_payout(claim.cover_asset, claim.amount, owner, caller=self.address)
        claim.payout_redeemed = True

        logger.info("Claim payout redeemed claim_id=%s amount=%s payee=%s", claim_id, claim.amount, owner)
        return claim.amount
