import logging
from typing import BinaryIO

import smbclient
import smbclient.path
from smbprotocol.exceptions import SMBException

from app.core.exceptions import RemoteIOError
from app.services.remote.descriptor import TargetDescriptor
from app.services.remote.types import RemoteEntry, split_remote_path

logger = logging.getLogger(__name__)


class SmbRemoteTarget:
    """SMB2/3 share accessed through ``smbclient``."""

    def __init__(
        self,
        descriptor: TargetDescriptor,
        port: int = 445,
        connection_timeout: int = 60,
        require_signing: bool = True,
    ) -> None:
        self.descriptor = descriptor
        self.port = port
        self.connection_timeout = connection_timeout
        self.require_signing = require_signing
        self._registered = False

    def _connect(self) -> None:
        if self._registered:
            return
        try:
            smbclient.register_session(
                self.descriptor.host,
                username=self.descriptor.username,
                password=self.descriptor.password,
                port=self.port,
                connection_timeout=self.connection_timeout,
                require_signing=self.require_signing,
            )
        except (SMBException, OSError, ValueError) as exc:
            raise RemoteIOError("connect", self.descriptor.url, str(exc)) from exc
        logger.info("smb_session_registered", extra={"host": self.descriptor.host, "share": self.descriptor.share})
        self._registered = True

    def _unc(self, path: str) -> str:
        try:
            parts = [self.descriptor.host, self.descriptor.share]
            if self.descriptor.route:
                parts.extend(split_remote_path(self.descriptor.route))
            parts.extend(split_remote_path(path))
        except ValueError as exc:
            raise RemoteIOError("resolve", path, str(exc)) from exc
        return "\\\\" + "\\".join(parts)

    def exists(self, path: str) -> bool:
        self._connect()
        try:
            return smbclient.path.exists(self._unc(path), port=self.port)
        except (SMBException, OSError) as exc:
            raise RemoteIOError("exists", path, str(exc)) from exc

    def list_entries(self, path: str) -> list[RemoteEntry]:
        self._connect()
        try:
            return [
                RemoteEntry(name=entry.name, is_directory=entry.is_dir())
                for entry in smbclient.scandir(self._unc(path), port=self.port)
            ]
        except (SMBException, OSError) as exc:
            raise RemoteIOError("list", path, str(exc)) from exc

    def mkdir_all(self, path: str) -> None:
        self._connect()
        try:
            smbclient.makedirs(self._unc(path), exist_ok=True, port=self.port)
        except (SMBException, OSError) as exc:
            raise RemoteIOError("mkdir", path, str(exc)) from exc

    def open_write_stream(self, path: str) -> BinaryIO:
        self._connect()
        try:
            return smbclient.open_file(self._unc(path), mode="wb", port=self.port)
        except (SMBException, OSError) as exc:
            raise RemoteIOError("open", path, str(exc)) from exc
