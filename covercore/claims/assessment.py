"""Assessment — голосование асессоров по claim'ам.

Механика стейкинга асессоров и fraud resolution вне скоупа: каждый
асессор имеет один голос, повторное голосование запрещено.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from covercore.core.domain.registry import normalize_address
from covercore.core.errors import AssessmentError
from covercore.core.math.fixed_point import ONE_DAY
from covercore.registry.pause import only_internal, when_not_paused

logger = logging.getLogger(__name__)


class PollStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DENIED = "DENIED"


@dataclass(frozen=True)
class AssessmentConfig:
    min_voting_period: int = 3 * ONE_DAY
    payout_cooldown: int = 1 * ONE_DAY


@dataclass
class Poll:
    start: int
    end: int
    accepted: int = 0
    denied: int = 0
    voters: set[str] = field(default_factory=set)


class Assessment:
    """Голосования по claim'ам."""

    def __init__(self, master, address: str, config: Optional[AssessmentConfig] = None):
        self.master = master
        self.address = normalize_address(address)
        self.config = config or AssessmentConfig()
        self._polls: list[Poll] = []

    @only_internal
    def start_assessment(self, caller: str, now: int) -> int:
        """Открытие голосования (вызывается IndividualClaims)."""
        self._polls.append(Poll(start=now, end=now + self.config.min_voting_period))
        return len(self._polls) - 1

    def get_poll(self, assessment_id: int) -> Poll:
        if not 0 <= assessment_id < len(self._polls):
            raise AssessmentError(f"assessment {assessment_id} does not exist")
        return self._polls[assessment_id]

    def get_poll_status(self, assessment_id: int, now: int) -> PollStatus:
        poll = self.get_poll(assessment_id)
        if now < poll.end:
            return PollStatus.PENDING
        return PollStatus.ACCEPTED if poll.accepted > poll.denied else PollStatus.DENIED

    @when_not_paused
    def cast_votes(
        self,
        assessment_ids: Sequence[int],
        votes: Sequence[bool],
        caller: str,
        now: int,
    ) -> None:
        """Голоса асессора (True — accept).

        Raises:
            SystemPausedError: система на паузе
            AssessmentError: голосование закрыто или уже проголосовано
            ValueError: длины assessment_ids и votes не совпадают
        """
        if len(assessment_ids) != len(votes):
            raise ValueError("assessment_ids and votes must have the same length")

        voter = normalize_address(caller)
        for assessment_id in assessment_ids:
            poll = self.get_poll(assessment_id)
            if now >= poll.end:
                raise AssessmentError(f"voting is closed for assessment {assessment_id}")
            if voter in poll.voters:
                raise AssessmentError("Already voted")
        if len(set(assessment_ids)) != len(assessment_ids):
            raise AssessmentError("Already voted")

        for assessment_id, accept in zip(assessment_ids, votes):
            poll = self._polls[assessment_id]
            poll.voters.add(voter)
            if accept:
                poll.accepted += 1
            else:
                poll.denied += 1

        logger.debug("Votes cast voter=%s assessments=%s", voter, list(assessment_ids))
