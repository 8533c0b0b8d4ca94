"""Emergency pause — глобальный флаг остановки value-flow операций.

Состояния: ACTIVE ↔ PAUSED. Переключает только emergency admin.

Пока система на паузе:
- операции, помеченные @when_not_paused, падают с SystemPausedError
- governance upgrade'ы (add/upgrade/remove/upgrade_master) разрешены,
  чтобы исправление можно было выкатить во время паузы
"""

import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Callable

from covercore.core.domain.registry import SystemState, normalize_address
from covercore.core.errors import SystemPausedError, UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PauseTransitionResult:
    """Результат вызова set_emergency_pause."""

    new_state: SystemState
    previous_state: SystemState

    # Диагностика
    transition_occurred: bool
    changed_by: str
    timestamp: int


class EmergencyPause:
    """Состояние emergency pause и роль emergency admin."""

    def __init__(self, emergency_admin: str):
        self._emergency_admin = normalize_address(emergency_admin)
        self._state = SystemState.ACTIVE

    @property
    def emergency_admin(self) -> str:
        return self._emergency_admin

    @property
    def state(self) -> SystemState:
        return self._state

    def is_paused(self) -> bool:
        return self._state == SystemState.PAUSED

    def set_emergency_admin(self, new_admin: str) -> None:
        self._emergency_admin = normalize_address(new_admin)

    def set_paused(self, paused: bool, caller: str, now: int = 0) -> PauseTransitionResult:
        """Переключение паузы.

        Повторная установка того же состояния допустима и ничего не меняет
        (transition_occurred=False).

        Raises:
            UnauthorizedError: caller не emergency admin
        """
        if normalize_address(caller) != self._emergency_admin:
            logger.warning("Rejected emergency pause change from %s", caller)
            raise UnauthorizedError("NXMaster: Not emergencyAdmin")

        previous_state = self._state
        self._state = SystemState.PAUSED if paused else SystemState.ACTIVE

        result = PauseTransitionResult(
            new_state=self._state,
            previous_state=previous_state,
            transition_occurred=previous_state != self._state,
            changed_by=normalize_address(caller),
            timestamp=now,
        )

        if result.transition_occurred:
            logger.warning(
                "Emergency pause %s -> %s by %s at %s",
                previous_state.value,
                self._state.value,
                result.changed_by,
                now,
            )

        return result


# =============================================================================
# GUARDS
# =============================================================================


def when_not_paused(method: Callable) -> Callable:
    """Запрет вызова метода сервиса, пока система на паузе.

    Сервис обязан иметь атрибут master с методом is_pause().
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self.master.is_pause():
            raise SystemPausedError()
        return method(self, *args, **kwargs)

    return wrapper


def only_internal(method: Callable) -> Callable:
    """Допуск только для адресов, зарегистрированных в реестре Master.

    Метод обязан принимать аргумент caller; сервис — иметь атрибут master.
    Членство проверяется на каждом вызове, без кэширования.
    """
    signature = inspect.signature(method)
    if "caller" not in signature.parameters:
        raise TypeError(f"{method.__qualname__} must accept a 'caller' argument")

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        caller = signature.bind(self, *args, **kwargs).arguments["caller"]
        if not self.master.is_internal(caller):
            logger.warning("Rejected non-internal caller %s for %s", caller, method.__qualname__)
            raise UnauthorizedError("Caller is not an internal contract")
        return method(self, *args, **kwargs)

    return wrapper
