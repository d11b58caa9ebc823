"""Track catalog, download and stats schemas (camelCase on the wire)."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrackItem(CamelModel):
    """One stored track in a listing."""
    filename: str
    url: str
    size: str  # formatted, e.g. "3.42MB"
    extension: str
    last_modified: str


class TrackList(CamelModel):
    total: int
    data: list[TrackItem]


class DeleteRequest(CamelModel):
    """Delete parameters, from JSON body, form body or query string."""
    names: list[str] | str | None = None
    all: bool | str | None = None
    password: str | None = None

    @property
    def delete_all(self) -> bool:
        if isinstance(self.all, str):
            return self.all.strip().lower() in ("true", "1", "yes")
        return bool(self.all)


class DeleteResult(CamelModel):
    success: bool = True
    message: str
    deleted_files: list[str]


class DownloadAccepted(CamelModel):
    success: bool = True
    message: str
    filename: str
    future_url: str


class DownloadExists(CamelModel):
    warning: str
    message: str
    filename: str
    url: str


class TransferStatsResponse(CamelModel):
    total_transferred: str
    total_requests: int
