"""
Public error taxonomy

Сервисы поднимают только эти исключения; app.main отображает их в HTTP-статусы:
ValidationError → 400, NotFoundError → 404, ConflictError → 409, InternalError → 500.
"""
from typing import Dict, Optional


class GymError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GymError, ValueError):
    status_code = 400

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields or {}


class NotFoundError(GymError):
    status_code = 404


class ConflictError(GymError):
    status_code = 409


class InternalError(GymError):
    status_code = 500


# ============================================================================
# Specific errors
# ============================================================================

class PersonNotFound(NotFoundError):
    def __init__(self, message: str = "Клиент не найден"):
        super().__init__(message)


class SubscriptionNotFound(NotFoundError):
    def __init__(self, message: str = "Абонемент не найден"):
        super().__init__(message)


class PlanNotFound(NotFoundError):
    def __init__(self, message: str = "Тариф не найден"):
        super().__init__(message)


class FreezeNotFound(NotFoundError):
    def __init__(self, message: str = "Активная заморозка не найдена"):
        super().__init__(message)


class SingleVisitNotFound(NotFoundError):
    def __init__(self, message: str = "Разовое посещение не найдено"):
        super().__init__(message)


class SubscriptionExists(ConflictError):
    def __init__(self, message: str = "Абонемент с таким номером уже существует"):
        super().__init__(message)


class PersonExists(ConflictError):
    def __init__(self, message: str = "Клиент с таким именем уже существует"):
        super().__init__(message)


class FreezeAlreadyOpen(ConflictError):
    def __init__(self, message: str = "Абонемент уже заморожен"):
        super().__init__(message)


class SubscriptionClosed(ConflictError):
    def __init__(self, message: str = "Абонемент закрыт"):
        super().__init__(message)


class ReferencedEntity(ConflictError):
    def __init__(self, message: str = "Запись используется и не может быть удалена"):
        super().__init__(message)


class FreezeNotAllowed(ValidationError):
    def __init__(self, message: str = "Для этого тарифа нельзя замораживать абонемент"):
        super().__init__(message)
