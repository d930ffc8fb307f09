from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from availability_engine.application.ports.document_store import DocumentChange


class DocumentWrittenEventDTO(BaseModel):
    """Change notification pushed by the document database for writes made elsewhere."""

    model_config = ConfigDict(populate_by_name=True)

    collection: str
    document_id: str = Field(alias="documentId")
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None

    def to_change(self) -> DocumentChange:
        return DocumentChange(
            collection=self.collection,
            document_id=self.document_id,
            before=self.before,
            after=self.after,
        )
