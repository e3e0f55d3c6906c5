from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.services.remote.types import split_remote_path

SMB_SCHEMES = ("smb://", "smbs://")


def trim_route(route: str | None, host: str, share: str) -> str | None:
    """Reduce a folder route to a share-relative path.

    Accepts a bare route ("Backups/phone") as well as a full URL
    ("smb://10.0.0.2/backup/Backups/phone") and yields the same value for both.
    """
    if not route:
        return None
    value = route.strip().replace("\\", "/")
    for scheme in SMB_SCHEMES:
        if value.lower().startswith(scheme):
            value = value[len(scheme):]
            parts = split_remote_path(value)
            if parts and parts[0] == host:
                parts = parts[1:]
            break
    else:
        parts = split_remote_path(value)
    if parts and parts[0] == share:
        parts = parts[1:]
    return "/".join(parts) or None


class TargetDescriptor(BaseModel):
    """Where a job writes: host, share, credentials and an optional sub-path.

    ``encode`` is canonical, so two equal descriptors produce identical
    strings; the job store compares these strings to deduplicate requests.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(min_length=1)
    share: str = Field(min_length=1)
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    route: str | None = None

    @field_validator("host", "share")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        cleaned = value.strip().strip("/\\")
        if not cleaned:
            raise ValueError("must not be blank")
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _normalise_route(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("route") is not None:
            host = str(data.get("host", "")).strip().strip("/\\")
            share = str(data.get("share", "")).strip().strip("/\\")
            data = {**data, "route": trim_route(data["route"], host, share)}
        return data

    def encode(self, include_password: bool = True) -> str:
        if include_password:
            return self.model_dump_json()
        return self.model_dump_json(exclude={"password"})

    @classmethod
    def decode(cls, encoded: str) -> "TargetDescriptor":
        return cls.model_validate_json(encoded)

    def with_route(self, route: str | None) -> "TargetDescriptor":
        return TargetDescriptor(
            host=self.host,
            share=self.share,
            username=self.username,
            password=self.password,
            route=route,
        )

    @property
    def url(self) -> str:
        base = f"smb://{self.host}/{self.share}/"
        return f"{base}{self.route}" if self.route else base
