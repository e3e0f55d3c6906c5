from pathlib import Path
from typing import BinaryIO

from app.core.exceptions import RemoteIOError
from app.services.remote.types import RemoteEntry, split_remote_path


class LocalRemoteTarget:
    """A share reachable through the local file system, e.g. a mounted CIFS volume."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        try:
            parts = split_remote_path(path)
        except ValueError as exc:
            raise RemoteIOError("resolve", path, str(exc)) from exc
        return self.root.joinpath(*parts)

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).exists()
        except OSError as exc:
            raise RemoteIOError("exists", path, str(exc)) from exc

    def list_entries(self, path: str) -> list[RemoteEntry]:
        folder = self._resolve(path)
        try:
            return [RemoteEntry(name=child.name, is_directory=child.is_dir()) for child in folder.iterdir()]
        except OSError as exc:
            raise RemoteIOError("list", path, str(exc)) from exc

    def mkdir_all(self, path: str) -> None:
        try:
            self._resolve(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RemoteIOError("mkdir", path, str(exc)) from exc

    def open_write_stream(self, path: str) -> BinaryIO:
        try:
            return self._resolve(path).open("wb")
        except OSError as exc:
            raise RemoteIOError("open", path, str(exc)) from exc
