"""Controller for Policy persistence with dynamic fields."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import uuid4

from policy_admin.controllers.base import DynamicRecordController, iso, parse_date_param
from policy_admin.database.filters import RecordFilter
from policy_admin.schema import ConflictError, Violation


def generate_policy_number() -> str:
    return f"POL-{uuid4().hex[:8].upper()}"


class PoliciesController(DynamicRecordController):

    record_name = "Policy"
    collection_name = "policies"
    date_fields = ("policy_start_date", "policy_end_date")
    nullable_fields = ("description",)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(data)
        if not data.get("policy_number"):
            data["policy_number"] = generate_policy_number()
        return super().create(data)

    def _create_row(self, data: Dict[str, Any]):
        return self.db.create_policy(data)

    def _get_row(self, record_id: str):
        return self.db.get_policy(record_id)

    def _update_row(self, record_id: str, updates: Dict[str, Any]):
        return self.db.update_policy(record_id, updates)

    def _delete_row(self, record_id: str) -> bool:
        return self.db.delete_policy(record_id)

    def _list_rows(self, filters: RecordFilter, offset: int, limit: int):
        return self.db.list_policies(filters=filters, offset=offset, limit=limit)

    def _ensure_unique(self, data: Dict[str, Any], record_id: Optional[str] = None) -> None:
        number = data.get("policy_number")
        if not number:
            return
        existing = self.db.get_policy_by_number(number)
        if existing and existing.id != record_id:
            raise ConflictError(f"Policy number {number} already exists")

    def _build_filter(self, query: Dict[str, Any], violations: List[Violation]) -> RecordFilter:
        filters = RecordFilter()
        if query.get("policyType"):
            filters.exact["policy_type"] = query["policyType"]
        if query.get("policyStatus"):
            filters.exact["policy_status"] = query["policyStatus"]
        if query.get("title"):
            filters.contains["title"] = str(query["title"])

        start = parse_date_param("startDate", query.get("startDate"), violations)
        end = parse_date_param("endDate", query.get("endDate"), violations)
        if start is not None or end is not None:
            filters.ranges["policy_start_date"] = (start, end)
        return filters

    def _to_dict(self, policy) -> Optional[Dict[str, Any]]:
        if not policy:
            return None
        return {
            "id": policy.id,
            "policyNumber": policy.policy_number,
            "policyType": policy.policy_type,
            "title": policy.title,
            "description": policy.description,
            "policyStartDate": iso(policy.policy_start_date),
            "policyEndDate": iso(policy.policy_end_date),
            "policyStatus": policy.policy_status,
            "policyAmount": policy.policy_amount,
            "policyTerm": policy.policy_term,
            "schemaDefinition": policy.schema_definition,
            "dynamicFields": policy.dynamic_fields,
            "createdAt": iso(policy.created_at),
            "updatedAt": iso(policy.updated_at),
        }
