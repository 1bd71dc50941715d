"""
Storage sentinel errors

Репозитории поднимают только эти исключения; сервисный слой переводит их
в публичные ошибки (app.application.errors) и дальше не пропускает.
"""


class StorageError(Exception):
    """Storage failure that does not map to a more specific sentinel."""


class SubscriptionExistsError(StorageError):
    pass


class SubscriptionNotFoundError(StorageError):
    pass


class PersonNotFoundError(StorageError):
    pass


class PersonExistsError(StorageError):
    pass


class PlanNotFoundError(StorageError):
    pass


class FreezeNotFoundError(StorageError):
    pass


class OpenFreezeExistsError(StorageError):
    pass


class SingleVisitNotFoundError(StorageError):
    pass


class RowReferencedError(StorageError):
    """Delete blocked by a foreign key from another table."""
