"""
Policy endpoints: CRUD, schema replacement and dynamic field replacement.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from policy_admin.api.dependencies import get_config, get_db
from policy_admin.api.schemas import (
    CreatePolicyRequest,
    UpdateDynamicFieldsRequest,
    UpdatePolicyRequest,
    UpdateSchemaRequest,
)
from policy_admin.controllers.policies_controller import PoliciesController

api = APIRouter()


def get_controller(db=Depends(get_db), config=Depends(get_config)) -> PoliciesController:
    return PoliciesController(db, config)


@api.post("/policies", status_code=status.HTTP_201_CREATED, tags=["Policies"])
async def create_policy(body: CreatePolicyRequest, controller: PoliciesController = Depends(get_controller)):
    return controller.create(body.to_record_data())


@api.get("/policies", tags=["Policies"])
async def list_policies(request: Request, controller: PoliciesController = Depends(get_controller)):
    query = dict(request.query_params)
    page = query.pop("page", 1)
    limit = query.pop("limit", None)
    return controller.list(query, page=page, limit=limit)


@api.get("/policies/{policy_id}", tags=["Policies"])
async def get_policy(policy_id: str, controller: PoliciesController = Depends(get_controller)):
    return controller.get(policy_id)


@api.put("/policies/{policy_id}", tags=["Policies"])
async def update_policy(
    policy_id: str,
    body: UpdatePolicyRequest,
    controller: PoliciesController = Depends(get_controller),
):
    return controller.update(policy_id, body.to_record_data())


@api.delete("/policies/{policy_id}", tags=["Policies"])
async def delete_policy(policy_id: str, controller: PoliciesController = Depends(get_controller)):
    controller.delete(policy_id)
    return {"message": "Policy deleted successfully"}


@api.put("/policies/{policy_id}/schema", tags=["Policies"])
async def update_policy_schema(
    policy_id: str,
    body: UpdateSchemaRequest,
    controller: PoliciesController = Depends(get_controller),
):
    if body.schema_definition is None:
        raise HTTPException(status_code=400, detail="Schema definition is required")
    return controller.update_schema(policy_id, body.schema_definition)


@api.put("/policies/{policy_id}/fields", tags=["Policies"])
async def update_policy_fields(
    policy_id: str,
    body: UpdateDynamicFieldsRequest,
    controller: PoliciesController = Depends(get_controller),
):
    if body.dynamic_fields is None:
        raise HTTPException(status_code=400, detail="Dynamic fields are required")
    return controller.update_dynamic_fields(policy_id, body.dynamic_fields)
