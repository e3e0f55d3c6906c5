from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable


@dataclass(slots=True, frozen=True)
class RemoteEntry:
    name: str
    is_directory: bool


@runtime_checkable
class RemoteTarget(Protocol):
    """Blocking file-system-like view of a backup destination.

    Paths are POSIX-style and relative to the target root (share plus
    optional route). Every failure surfaces as ``RemoteIOError``; nothing
    here retries.
    """

    def exists(self, path: str) -> bool:
        ...

    def list_entries(self, path: str) -> list[RemoteEntry]:
        ...

    def mkdir_all(self, path: str) -> None:
        ...

    def open_write_stream(self, path: str) -> BinaryIO:
        """Return a writable binary sink; callers close it with ``with``."""
        ...


def split_remote_path(path: str) -> list[str]:
    parts = [part for part in path.replace("\\", "/").split("/") if part and part != "."]
    if ".." in parts:
        raise ValueError(f"Remote path may not leave the target root: {path}")
    return parts


def join_remote_path(*segments: str) -> str:
    parts: list[str] = []
    for segment in segments:
        if segment:
            parts.extend(split_remote_path(segment))
    return "/".join(parts)
