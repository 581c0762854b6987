"""Controller for Application persistence with dynamic fields.

Application titles are unique.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from policy_admin.controllers.base import DynamicRecordController, iso, parse_bool_param
from policy_admin.database.filters import RecordFilter
from policy_admin.schema import ConflictError, Violation


class ApplicationsController(DynamicRecordController):

    record_name = "Application"
    collection_name = "applications"
    date_fields = ("expiry_date",)

    def _create_row(self, data: Dict[str, Any]):
        return self.db.create_application(data)

    def _get_row(self, record_id: str):
        return self.db.get_application(record_id)

    def _update_row(self, record_id: str, updates: Dict[str, Any]):
        return self.db.update_application(record_id, updates)

    def _delete_row(self, record_id: str) -> bool:
        return self.db.delete_application(record_id)

    def _list_rows(self, filters: RecordFilter, offset: int, limit: int):
        return self.db.list_applications(filters=filters, offset=offset, limit=limit)

    def _ensure_unique(self, data: Dict[str, Any], record_id: Optional[str] = None) -> None:
        title = data.get("title")
        if not title:
            return
        existing = self.db.get_application_by_title(title)
        if existing and existing.id != record_id:
            raise ConflictError("Application already exists")

    def _build_filter(self, query: Dict[str, Any], violations: List[Violation]) -> RecordFilter:
        filters = RecordFilter()
        if query.get("title"):
            filters.contains["title"] = str(query["title"])
        if query.get("createdBy"):
            filters.exact["created_by"] = query["createdBy"]
        is_active = parse_bool_param("isActive", query.get("isActive"), violations)
        if is_active is not None:
            filters.exact["is_active"] = is_active
        return filters

    def _to_dict(self, app) -> Optional[Dict[str, Any]]:
        if not app:
            return None
        return {
            "id": app.id,
            "title": app.title,
            "description": app.description,
            "rules": list(app.rules or []),
            "isActive": app.is_active,
            "expiryDate": iso(app.expiry_date),
            "createdBy": app.created_by,
            "schemaDefinition": app.schema_definition,
            "dynamicFields": app.dynamic_fields,
            "createdAt": iso(app.created_at),
            "updatedAt": iso(app.updated_at),
        }
