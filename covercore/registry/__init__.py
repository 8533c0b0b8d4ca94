"""Registry — реестр контрактов, upgrade'ы и emergency pause.

- Master: code → address, REPLACEABLE/PROXY записи, internal-авторизация
- Governance: исполнение предложений NEW/UPGRADE/REMOVE/UPGRADE_MASTER
- EmergencyPause и guards when_not_paused / only_internal
"""

from .governance import Governance, ProposalCategory
from .master import GOVERNANCE_CODE, Master, MasterImplementation, MasterStorage
from .pause import EmergencyPause, PauseTransitionResult, only_internal, when_not_paused
from .proxy import AddressBook, OwnedUpgradeabilityProxy

__all__ = [
    "Master",
    "MasterImplementation",
    "MasterStorage",
    "GOVERNANCE_CODE",
    "Governance",
    "ProposalCategory",
    "EmergencyPause",
    "PauseTransitionResult",
    "when_not_paused",
    "only_internal",
    "AddressBook",
    "OwnedUpgradeabilityProxy",
]
