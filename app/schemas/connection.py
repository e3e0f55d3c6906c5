from pydantic import BaseModel, Field


class ConnectionUpdate(BaseModel):
    host: str = Field(min_length=1)
    share: str = Field(min_length=1)
    username: str | None = None
    password: str | None = None


class ConnectionRead(BaseModel):
    host: str
    share: str
    username: str | None
    password: str
    directory: str | None
    url: str


class DirectoryUpdate(BaseModel):
    route: str | None = None


class FolderCreate(BaseModel):
    path: str = ""
    name: str = Field(min_length=1)


class DirectoryEntryRead(BaseModel):
    name: str
    path: str


class ConnectionTestResult(BaseModel):
    success: bool


class SelectionUpdate(BaseModel):
    paths: list[str]


class SelectionRead(BaseModel):
    paths: list[str]
