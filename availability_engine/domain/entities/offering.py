from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

DEFAULT_COMPANY_NAME = "Service Provider"
DEFAULT_SERVICE_NAME = "Service"


@dataclass(frozen=True)
class CompanyOffering:
    """A company's listing of a catalogue service, with names denormalized for display."""

    id: str
    company_id: str
    service_id: str
    company_name: str = DEFAULT_COMPANY_NAME
    service_name: str = DEFAULT_SERVICE_NAME

    @classmethod
    def from_document(cls, doc_id: str, doc: Mapping[str, Any]) -> CompanyOffering | None:
        company_id = doc.get("companyId")
        if not company_id:
            return None
        return cls(
            id=doc_id,
            company_id=str(company_id),
            service_id=str(doc.get("adminServiceId") or ""),
            company_name=doc.get("companyName") or DEFAULT_COMPANY_NAME,
            service_name=doc.get("name") or DEFAULT_SERVICE_NAME,
        )
