from pathlib import Path

from app.core.config import Settings, get_settings
from app.services.remote.descriptor import TargetDescriptor
from app.services.remote.local import LocalRemoteTarget
from app.services.remote.smb import SmbRemoteTarget
from app.services.remote.types import RemoteEntry, RemoteTarget, join_remote_path


def open_target(descriptor: TargetDescriptor, settings: Settings | None = None) -> RemoteTarget:
    settings = settings or get_settings()
    if settings.remote_backend == "local":
        root = Path(settings.local_share_root) / descriptor.host / descriptor.share
        if descriptor.route:
            root = root / descriptor.route
        return LocalRemoteTarget(root)
    if settings.remote_backend == "smb":
        return SmbRemoteTarget(
            descriptor,
            port=settings.smb_port,
            connection_timeout=settings.smb_connection_timeout,
            require_signing=settings.smb_require_signing,
        )
    raise ValueError(f"Unsupported remote backend: {settings.remote_backend}")


__all__ = ["RemoteEntry", "RemoteTarget", "TargetDescriptor", "LocalRemoteTarget", "join_remote_path", "open_target"]
