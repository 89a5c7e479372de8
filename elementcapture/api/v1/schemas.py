from pydantic import BaseModel


class DownloadRequestSchema(BaseModel):
    filename: str | None = None


class DownloadResponseSchema(BaseModel):
    path: str
    filename: str
    mime_type: str


class ClearResponseSchema(BaseModel):
    cleared: bool = True
