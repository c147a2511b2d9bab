import logging
from typing import List

from workhub.core.errors import NotFound
from workhub.db.store import EntityStore
from workhub.models.password import PasswordEntry
from workhub.schemas.password import PasswordCreate, PasswordUpdate
from workhub.services.identity import Principal
from workhub.services.policy import Action, SecretTarget, can
from workhub.services.team_service import load_users

logger = logging.getLogger(__name__)


class PasswordService:
    """Shared credentials vault; Admins manage entries, access lists gate reads"""

    def __init__(self, store: EntityStore):
        self.store = store

    def list(self, principal: Principal) -> List[PasswordEntry]:
        entries = self.store.find(PasswordEntry, order_by=PasswordEntry.created_at.desc())
        return [
            entry for entry in entries
            if can(principal, Action.READ_SECRET, SecretTarget(frozenset(entry.access_list_ids)))
        ]

    def get(self, principal: Principal, entry_id: int) -> PasswordEntry:
        entry = self._get_entry(entry_id)
        can(principal, Action.READ_SECRET, SecretTarget(frozenset(entry.access_list_ids))).enforce()
        return entry

    def create(self, principal: Principal, data: PasswordCreate) -> PasswordEntry:
        can(principal, Action.WRITE_SECRET).enforce()
        entry = PasswordEntry(name=data.name, value=data.value)
        entry.access_list = load_users(self.store, data.access_list)
        self.store.insert(entry)
        self.store.commit()
        logger.info("Password entry %s created by %s", entry.id, principal.id)
        return entry

    def update(self, principal: Principal, entry_id: int, data: PasswordUpdate) -> PasswordEntry:
        can(principal, Action.WRITE_SECRET).enforce()
        entry = self._get_entry(entry_id)
        if data.name is not None:
            entry.name = data.name
        if data.value is not None:
            entry.value = data.value
        if data.access_list is not None:
            entry.access_list = load_users(self.store, data.access_list)
        self.store.commit()
        return entry

    def delete(self, principal: Principal, entry_id: int) -> None:
        can(principal, Action.WRITE_SECRET).enforce()
        entry = self._get_entry(entry_id)
        self.store.delete(entry)
        self.store.commit()
        logger.info("Password entry %s deleted by %s", entry_id, principal.id)

    def _get_entry(self, entry_id: int) -> PasswordEntry:
        entry = self.store.find_by_id(PasswordEntry, entry_id)
        if entry is None:
            raise NotFound("Password not found", {"passwordId": entry_id})
        return entry
