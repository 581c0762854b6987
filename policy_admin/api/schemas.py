"""
Request bodies for the policies and applications endpoints.

Wire names are camelCase (aliases); `to_record_data()` returns the snake_case
attribute dict the controllers work with. `schemaDefinition` is kept as a raw
mapping here and parsed once by the controller, so schema authoring problems
surface as one ConfigurationError listing all of them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_record_data(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CreatePolicyRequest(_Body):
    policy_number: Optional[str] = Field(default=None, alias="policyNumber", min_length=1)
    policy_type: str = Field(alias="policyType", min_length=1)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    policy_start_date: datetime = Field(alias="policyStartDate")
    policy_end_date: datetime = Field(alias="policyEndDate")
    policy_status: str = Field(alias="policyStatus", min_length=1)
    policy_amount: float = Field(alias="policyAmount")
    policy_term: int = Field(alias="policyTerm", ge=0)
    schema_definition: Optional[Dict[str, Any]] = Field(default=None, alias="schemaDefinition")
    dynamic_fields: Optional[Dict[str, Any]] = Field(default=None, alias="dynamicFields")

    def to_record_data(self) -> Dict[str, Any]:
        return self.model_dump()


class UpdatePolicyRequest(_Body):
    policy_number: Optional[str] = Field(default=None, alias="policyNumber", min_length=1)
    policy_type: Optional[str] = Field(default=None, alias="policyType", min_length=1)
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    policy_start_date: Optional[datetime] = Field(default=None, alias="policyStartDate")
    policy_end_date: Optional[datetime] = Field(default=None, alias="policyEndDate")
    policy_status: Optional[str] = Field(default=None, alias="policyStatus", min_length=1)
    policy_amount: Optional[float] = Field(default=None, alias="policyAmount")
    policy_term: Optional[int] = Field(default=None, alias="policyTerm", ge=0)
    schema_definition: Optional[Dict[str, Any]] = Field(default=None, alias="schemaDefinition")
    dynamic_fields: Optional[Dict[str, Any]] = Field(default=None, alias="dynamicFields")


class CreateApplicationRequest(_Body):
    title: str = Field(min_length=1)
    description: str
    rules: List[str] = Field(default_factory=list)
    is_active: bool = Field(default=True, alias="isActive")
    expiry_date: datetime = Field(alias="expiryDate")
    created_by: str = Field(alias="createdBy", min_length=1)
    schema_definition: Optional[Dict[str, Any]] = Field(default=None, alias="schemaDefinition")
    dynamic_fields: Optional[Dict[str, Any]] = Field(default=None, alias="dynamicFields")

    def to_record_data(self) -> Dict[str, Any]:
        return self.model_dump()


class UpdateApplicationRequest(_Body):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    rules: Optional[List[str]] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    expiry_date: Optional[datetime] = Field(default=None, alias="expiryDate")
    schema_definition: Optional[Dict[str, Any]] = Field(default=None, alias="schemaDefinition")
    dynamic_fields: Optional[Dict[str, Any]] = Field(default=None, alias="dynamicFields")


class UpdateSchemaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_definition: Optional[Dict[str, Any]] = Field(default=None, alias="schemaDefinition")


class UpdateDynamicFieldsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dynamic_fields: Optional[Dict[str, Any]] = Field(default=None, alias="dynamicFields")
