"""
Errors — таксономия ошибок covercore

Все доменные ошибки наследуются от CoverCoreError. Там, где ошибка по смыслу
совпадает со стандартной (overflow, деление на ноль, неизвестный ключ),
класс дополнительно наследует встроенное исключение, чтобы вызывающий код
мог ловить его привычным способом.

Политика: ошибки всегда пробрасываются синхронно вызывающему, состояние
операции при ошибке не меняется (all-or-nothing).
"""


class CoverCoreError(Exception):
    """Базовый класс для всех ошибок covercore."""


# =============================================================================
# AUTHORIZATION / PAUSE
# =============================================================================


class UnauthorizedError(CoverCoreError):
    """Вызывающий не имеет нужной роли (emergency admin, governance, internal)."""


class SystemPausedError(CoverCoreError):
    """Операция value-flow запрещена, пока система на emergency pause."""

    def __init__(self, message: str = "System is paused"):
        super().__init__(message)


# =============================================================================
# ARITHMETIC
# =============================================================================


class AllocationOverflowError(CoverCoreError, OverflowError):
    """Аллокация транша не помещается в uint32 (намеренный потолок)."""

    def __init__(self, message: str = "SafeCast: value doesn't fit in 32 bits"):
        super().__init__(message)


class ZeroCapacityError(CoverCoreError, ZeroDivisionError):
    """total_capacity == 0: премию и price bump вычислить невозможно."""


# =============================================================================
# STAKING
# =============================================================================


class InvalidTrancheError(CoverCoreError, ValueError):
    """Tranche id вне окна активных траншей."""


class InsufficientCapacityError(CoverCoreError):
    """В пуле недостаточно свободной capacity для запрошенной аллокации."""


class UnknownProductError(CoverCoreError, LookupError):
    """Продукт не инициализирован в пуле или в каталоге Cover."""


# =============================================================================
# REGISTRY / ORACLE
# =============================================================================


class UnknownContractError(CoverCoreError, ValueError):
    """Код контракта отсутствует в реестре (для мутаций, не для чтения)."""


class UnknownAssetError(CoverCoreError, LookupError):
    """Актив неизвестен price feed oracle."""

    def __init__(self, message: str = "PriceFeedOracle: Unknown asset"):
        super().__init__(message)


# =============================================================================
# COLLABORATORS
# =============================================================================


class PremiumTooHighError(CoverCoreError):
    """Премия превышает max_premium_in_asset покупателя."""

    def __init__(self, message: str = "Cover: Price exceeds maxPremiumInAsset"):
        super().__init__(message)


class SlippageError(CoverCoreError):
    """Покупка/продажа токенов дала меньше, чем min_out."""


class ClaimError(CoverCoreError):
    """Некорректная операция над claim (не принят, уже выплачен и т.п.)."""


class AssessmentError(CoverCoreError):
    """Некорректное голосование (повторный голос, неизвестный assessment)."""
