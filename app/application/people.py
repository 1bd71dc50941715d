"""
People use cases - справочник клиентов зала
"""
import logging
from datetime import timedelta
from typing import List

from pydantic import TypeAdapter

from app.application.caching import read_through, safe_delete, safe_delete_prefix
from app.application.errors import (
    InternalError, PersonExists, PersonNotFound, ReferencedEntity, ValidationError,
)
from app.application.person_subs import ALL_KEY as PERSON_SUBS_ALL_KEY, person_id_key, person_name_key
from app.application.ports import PersonStorage
from app.application.statistics import invalidate_statistics
from app.domain.dto import PersonView
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage import errors as storage_errors

logger = logging.getLogger(__name__)

PEOPLE_ALL_KEY = "people:all"
PEOPLE_ALL_TTL = timedelta(minutes=30)
PERSON_TTL = timedelta(minutes=10)
PERSON_BY_NAME_PREFIX = "person:name:"

_person = TypeAdapter(PersonView)
_people = TypeAdapter(List[PersonView])


def person_by_name_key(name: str) -> str:
    return f"{PERSON_BY_NAME_PREFIX}{name}"


def person_by_id_key(person_id: int) -> str:
    return f"person:id:{person_id}"


def _clean(full_name, phone) -> tuple[str, str]:
    fields = {}
    full_name = (full_name or "").strip()
    phone = (phone or "").strip()
    if not full_name:
        fields["full_name"] = "обязательное поле"
    if not phone:
        fields["phone"] = "обязательное поле"
    if fields:
        raise ValidationError("Некорректные данные клиента", fields)
    return full_name, phone


def _internal(op: str, exc: Exception) -> InternalError:
    logger.error("%s failed: %s", op, exc)
    return InternalError("Внутренняя ошибка хранилища")


def _invalidate(cache: Cache, person: PersonView) -> None:
    safe_delete(
        cache,
        PEOPLE_ALL_KEY,
        PERSON_SUBS_ALL_KEY,
        person_by_id_key(person.id),
        person_id_key(person.id),
        person_name_key(person.full_name),
    )
    # substring search results may change with any name
    safe_delete_prefix(cache, PERSON_BY_NAME_PREFIX)
    invalidate_statistics(cache)


class AddPersonUseCase:
    def __init__(self, storage: PersonStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def execute(self, full_name: str, phone: str) -> int:
        full_name, phone = _clean(full_name, phone)
        try:
            person_id = self.storage.add(full_name, phone)
            self.storage.commit()
        except storage_errors.PersonExistsError:
            raise PersonExists() from None
        except storage_errors.StorageError as e:
            raise _internal("people.add", e) from e

        logger.info("Person %s added (id=%s)", full_name, person_id)
        _invalidate(self.cache, PersonView(id=person_id, full_name=full_name, phone=phone))
        return person_id


class UpdatePersonUseCase:
    def __init__(self, storage: PersonStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def execute(self, person_id: int, full_name: str, phone: str) -> PersonView:
        full_name, phone = _clean(full_name, phone)
        try:
            before = self.storage.get(person_id)
            after = self.storage.update(person_id, full_name, phone)
            self.storage.commit()
        except storage_errors.PersonNotFoundError:
            raise PersonNotFound() from None
        except storage_errors.PersonExistsError:
            raise PersonExists() from None
        except storage_errors.StorageError as e:
            raise _internal("people.update", e) from e

        logger.info("Person %s updated", person_id)
        _invalidate(self.cache, before)
        _invalidate(self.cache, after)
        # cached subscriptions carry the person name
        safe_delete_prefix(self.cache, "person_sub:number:")
        return after


class DeletePersonUseCase:
    """Удаление клиента с абонементами запрещено (ReferencedEntity)"""

    def __init__(self, storage: PersonStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def execute(self, person_id: int) -> None:
        try:
            deleted = self.storage.delete(person_id)
            self.storage.commit()
        except storage_errors.PersonNotFoundError:
            raise PersonNotFound() from None
        except storage_errors.RowReferencedError:
            raise ReferencedEntity("У клиента есть абонементы, удаление невозможно") from None
        except storage_errors.StorageError as e:
            raise _internal("people.delete", e) from e

        logger.info("Person %s deleted", person_id)
        _invalidate(self.cache, deleted)


class PeopleReadService:
    def __init__(self, storage: PersonStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def find_all(self) -> List[PersonView]:
        try:
            return read_through(self.cache, PEOPLE_ALL_KEY, PEOPLE_ALL_TTL, _people, self.storage.get_all)
        except storage_errors.StorageError as e:
            raise _internal("people.find_all", e) from e

    def find_by_name(self, name: str) -> List[PersonView]:
        """Case-insensitive substring search, at most 20 results."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Не указано имя", {"name": "обязательное поле"})
        try:
            return read_through(
                self.cache, person_by_name_key(name), PERSON_TTL, _people,
                lambda: self.storage.find_by_name(name),
            )
        except storage_errors.StorageError as e:
            raise _internal("people.find_by_name", e) from e

    def find_by_id(self, person_id: int) -> PersonView:
        try:
            return read_through(
                self.cache, person_by_id_key(person_id), PERSON_TTL, _person,
                lambda: self.storage.get(person_id),
            )
        except storage_errors.PersonNotFoundError:
            raise PersonNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("people.find_by_id", e) from e
