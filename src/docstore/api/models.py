"""JSON response envelope returned by every document route."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from docstore.storage import Document


class DocumentResponse(BaseModel):
    """Response envelope. Empty fields are omitted from the JSON body."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    key: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    document: Optional[str] = None
    timestamp: Optional[int] = None
    name: Optional[str] = None
    content_type: Optional[str] = Field(default=None, alias="content-type")
    extractor: Optional[str] = None
    title: Optional[str] = None
    creation_date: Optional[str] = Field(default=None, alias="creation-date")
    modification_date: Optional[str] = Field(default=None, alias="modification-date")

    @classmethod
    def success(cls, key: str, message: str = "") -> "DocumentResponse":
        return cls(ok=True, key=key or None, message=message or None)

    @classmethod
    def failure(cls, key: str, message: str, error: BaseException) -> "DocumentResponse":
        return cls(ok=False, key=key or None, message=message, error=str(error) or None)

    @classmethod
    def from_document(cls, doc: Document) -> "DocumentResponse":
        meta = doc.metadata
        return cls(
            ok=True,
            key=doc.key,
            document=doc.content.decode("utf-8", errors="replace"),
            timestamp=meta.timestamp or None,
            name=meta.name or None,
            content_type=meta.content_type or None,
            extractor=meta.extractor or None,
            title=meta.title or None,
            creation_date=meta.creation_date or None,
            modification_date=meta.modification_date or None,
        )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
