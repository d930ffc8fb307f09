from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class Worker:
    id: str
    company_id: str | None
    name: str | None = None
    is_active: bool = False
    assigned_service_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_document(cls, doc_id: str, doc: Mapping[str, Any]) -> Worker:
        services = doc.get("assignedServices") or []
        if isinstance(services, str):
            services = [services]
        return cls(
            id=doc_id,
            company_id=doc.get("companyId"),
            name=doc.get("name"),
            is_active=doc.get("isActive") is True,
            assigned_service_ids=frozenset(str(s) for s in services),
        )

    def is_eligible_for(self, service_id: str | None) -> bool:
        """Active, and assigned to the service when one is given."""
        if not self.is_active:
            return False
        if service_id is None:
            return True
        return service_id in self.assigned_service_ids
