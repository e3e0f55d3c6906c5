"""Expand a file selection into the ordered list of files a job will copy."""

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass
from pathlib import Path

from app.core.exceptions import DiscoveryError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class IndexedFile:
    source_path: str
    relative_dir: str = ""


def relative_dir_for(file_path: Path, root: Path) -> str:
    """Destination folder of ``file_path`` relative to the selected ``root``.

    Computed on path components rather than string prefixes, so "/data/Photos2"
    is never mistaken for a child of "/data/Photos".
    """
    parent_parts = file_path.parent.parts
    root_parts = root.parts
    if parent_parts[: len(root_parts)] != root_parts:
        raise ValueError(f"{file_path} is not inside {root}")
    return "/".join(parent_parts[len(root_parts):])


def _walk(directory: Path, root: Path) -> Iterator[IndexedFile]:
    try:
        children = list(directory.iterdir())
    except OSError as exc:
        logger.warning("discovery_directory_unreadable", extra={"path": str(directory), "error": str(exc)})
        return
    # Listing order is kept as-is.
    for child in children:
        if child.is_symlink() and child.is_dir():
            logger.info("discovery_symlink_skipped", extra={"path": str(child)})
            continue
        if child.is_dir():
            yield from _walk(child, root)
        elif child.is_file():
            yield IndexedFile(source_path=str(child), relative_dir=relative_dir_for(child, root))


def discover_files(roots: Iterable[str]) -> list[IndexedFile]:
    root_list = list(roots)
    found: list[IndexedFile] = []
    for raw_root in root_list:
        root = Path(raw_root).absolute()
        if root.is_file():
            found.append(IndexedFile(source_path=str(root), relative_dir=""))
        elif root.is_dir():
            found.extend(_walk(root, root))
        else:
            logger.warning("discovery_root_missing", extra={"path": str(root)})
    if not found:
        raise DiscoveryError(root_list)
    _warn_on_shared_destinations(found)
    logger.info("discovery_finished", extra={"roots": len(root_list), "files": len(found)})
    return found


def _warn_on_shared_destinations(files: list[IndexedFile]) -> None:
    seen: dict[tuple[str, str], str] = {}
    for item in files:
        key = (item.relative_dir, Path(item.source_path).name)
        if key in seen:
            logger.warning(
                "discovery_destination_collision",
                extra={"path": item.source_path, "overwrites": seen[key]},
            )
        seen[key] = item.source_path


def encode_manifest(files: list[IndexedFile]) -> str:
    return json.dumps([asdict(item) for item in files], separators=(",", ":"))


def decode_manifest(encoded: str) -> list[IndexedFile]:
    return [IndexedFile(source_path=row["source_path"], relative_dir=row.get("relative_dir", "")) for row in json.loads(encoded)]


def encode_selection(paths: Iterable[str]) -> str:
    """Canonical selection string: input order kept, duplicates dropped."""
    return json.dumps(list(dict.fromkeys(str(path) for path in paths)), separators=(",", ":"))


def decode_selection(encoded: str) -> list[str]:
    value = json.loads(encoded)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError("Selection must be a JSON list of paths")
    return value
