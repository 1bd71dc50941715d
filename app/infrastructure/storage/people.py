"""
Person repository
"""
from typing import List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from app.domain.dto import PersonView
from app.infrastructure.db.models import PersonModel
from app.infrastructure.storage.base import Repository, integrity_kind
from app.infrastructure.storage.errors import (
    PersonExistsError, PersonNotFoundError, RowReferencedError, StorageError,
)

FIND_BY_NAME_LIMIT = 20


class PersonRepository(Repository):

    def add(self, full_name: str, phone: str) -> int:
        with self._db_errors("storage.people.add"):
            person = PersonModel(full_name=full_name, phone=phone)
            self.db.add(person)
            self._flush_unique(full_name)
            return person.id

    def update(self, person_id: int, full_name: str, phone: str) -> PersonView:
        with self._db_errors("storage.people.update"):
            person = self.db.get(PersonModel, person_id)
            if person is None:
                raise PersonNotFoundError(person_id)
            person.full_name = full_name
            person.phone = phone
            self._flush_unique(full_name)
            return PersonView.model_validate(person)

    def delete(self, person_id: int) -> PersonView:
        """Удалить клиента; возвращает удалённую запись (для инвалидации кэша по имени)"""
        with self._db_errors("storage.people.delete"):
            person = self.db.get(PersonModel, person_id)
            if person is None:
                raise PersonNotFoundError(person_id)
            view = PersonView.model_validate(person)
            self.db.delete(person)
            try:
                self.db.flush()
            except IntegrityError as exc:
                self.db.rollback()
                if integrity_kind(exc) == "foreign_key":
                    raise RowReferencedError(person_id) from exc
                raise StorageError(f"storage.people.delete: {exc}") from exc
            return view

    def get(self, person_id: int) -> PersonView:
        with self._db_errors("storage.people.get"):
            person = self.db.get(PersonModel, person_id)
        if person is None:
            raise PersonNotFoundError(person_id)
        return PersonView.model_validate(person)

    def find_by_name(self, name: str) -> List[PersonView]:
        """Case-insensitive substring match, ordered by name."""
        with self._db_errors("storage.people.find_by_name"):
            pattern = f"%{name.lower()}%"
            rows = self.db.scalars(
                select(PersonModel)
                .where(func.lower(PersonModel.full_name).like(pattern))
                .order_by(PersonModel.full_name)
                .limit(FIND_BY_NAME_LIMIT)
            ).all()
        return [PersonView.model_validate(row) for row in rows]

    def get_all(self) -> List[PersonView]:
        with self._db_errors("storage.people.get_all"):
            rows = self.db.scalars(select(PersonModel).order_by(PersonModel.id)).all()
        return [PersonView.model_validate(row) for row in rows]

    def _flush_unique(self, full_name: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            if integrity_kind(exc) == "unique":
                raise PersonExistsError(full_name) from exc
            raise StorageError(f"storage.people: {exc}") from exc
