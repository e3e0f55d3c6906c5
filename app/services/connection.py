"""Saved share credentials, backup directory and file selection."""

import logging
from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import RemoteIOError
from app.core.security import decrypt_secret, encrypt_secret
from app.models.preference import Preference
from app.services.discovery import decode_selection, encode_selection
from app.services.remote import RemoteEntry, RemoteTarget, TargetDescriptor, join_remote_path, open_target

logger = logging.getLogger(__name__)

HOST_KEY = "smb_ip"
SHARE_KEY = "smb_share"
USER_KEY = "smb_user"
PASSWORD_KEY = "smb_password"
DIRECTORY_KEY = "smb_selected_directory"
SELECTION_KEY = "selected_files"


def _get(db: Session, key: str) -> str | None:
    row = db.scalar(select(Preference).where(Preference.key == key))
    return row.value if row else None


def _put(db: Session, key: str, value: str) -> None:
    row = db.scalar(select(Preference).where(Preference.key == key))
    if row is None:
        db.add(Preference(key=key, value=value))
    else:
        row.value = value
        db.add(row)


class ConnectionService:
    def __init__(self, db: Session, target_factory: Callable[[TargetDescriptor], RemoteTarget] = open_target) -> None:
        self.db = db
        self.target_factory = target_factory

    def get_saved_target(self, include_directory: bool = True) -> TargetDescriptor | None:
        host = _get(self.db, HOST_KEY)
        share = _get(self.db, SHARE_KEY)
        if not host or not share:
            return None
        route = _get(self.db, DIRECTORY_KEY) if include_directory else None
        return TargetDescriptor(
            host=host,
            share=share,
            username=_get(self.db, USER_KEY) or None,
            password=decrypt_secret(_get(self.db, PASSWORD_KEY)) or None,
            route=route or None,
        )

    def save_credentials(self, host: str, share: str, username: str | None, password: str | None) -> TargetDescriptor:
        descriptor = TargetDescriptor(host=host, share=share, username=username, password=password)
        _put(self.db, HOST_KEY, descriptor.host)
        _put(self.db, SHARE_KEY, descriptor.share)
        _put(self.db, USER_KEY, descriptor.username or "")
        _put(self.db, PASSWORD_KEY, encrypt_secret(descriptor.password))

        saved_directory = _get(self.db, DIRECTORY_KEY)
        if saved_directory and not self._directory_exists(descriptor, saved_directory):
            logger.info("saved_backup_directory_invalidated")
            _put(self.db, DIRECTORY_KEY, "")
        self.db.commit()
        return descriptor

    def save_backup_directory(self, route: str | None) -> TargetDescriptor:
        base = self.get_saved_target(include_directory=False)
        if base is None:
            raise ValueError("Save the share connection before choosing a backup directory")
        descriptor = base.with_route(route)
        if descriptor.route and not self._directory_exists(base, descriptor.route):
            raise ValueError(f"Backup directory does not exist on the share: {descriptor.route}")
        _put(self.db, DIRECTORY_KEY, descriptor.route or "")
        self.db.commit()
        return descriptor

    def _directory_exists(self, descriptor: TargetDescriptor, route: str) -> bool:
        try:
            return self.target_factory(descriptor.with_route(None)).exists(route)
        except RemoteIOError:
            return False

    def test_connection(self, descriptor: TargetDescriptor) -> bool:
        try:
            return self.target_factory(descriptor.with_route(None)).exists("")
        except RemoteIOError as exc:
            logger.warning("connection_test_failed", extra={"error": str(exc)})
            return False

    def list_directories(self, descriptor: TargetDescriptor, path: str = "") -> list[RemoteEntry]:
        entries = self.target_factory(descriptor.with_route(None)).list_entries(path)
        return sorted((entry for entry in entries if entry.is_directory), key=lambda entry: entry.name)

    def create_folder(self, descriptor: TargetDescriptor, path: str, name: str) -> str:
        folder = join_remote_path(path, name.strip().rstrip("/"))
        target = self.target_factory(descriptor.with_route(None))
        if not target.exists(folder):
            target.mkdir_all(folder)
        return folder


class SelectionService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_selection(self) -> list[str]:
        encoded = _get(self.db, SELECTION_KEY)
        return decode_selection(encoded) if encoded else []

    def save_selection(self, paths: list[str]) -> list[str]:
        encoded = encode_selection(paths)
        _put(self.db, SELECTION_KEY, encoded)
        self.db.commit()
        return decode_selection(encoded)
