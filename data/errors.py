class ArcadeError(Exception):
    """Базовая ошибка движка. reason - короткий код вида "invalid_reaction_time"."""

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or reason)
        self.reason = reason


class InvalidMeasurement(ArcadeError, ValueError):
    """Время реакции вне допустимого диапазона - попытка отклоняется, токенов нет."""


class ChallengeSourceFailure(ArcadeError):
    """Не удалось получить или проверить задание. Раунд не продвигается, можно повторить."""


class PersistenceFailure(ArcadeError):
    """Сессия не сохранилась. Результат остаётся в памяти, баланс обновится после повтора."""
