"""
Application endpoints: CRUD, schema replacement and dynamic field replacement.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from policy_admin.api.dependencies import get_config, get_db
from policy_admin.api.schemas import (
    CreateApplicationRequest,
    UpdateDynamicFieldsRequest,
    UpdateApplicationRequest,
    UpdateSchemaRequest,
)
from policy_admin.controllers.applications_controller import ApplicationsController

api = APIRouter()


def get_controller(db=Depends(get_db), config=Depends(get_config)) -> ApplicationsController:
    return ApplicationsController(db, config)


@api.post("/applications", status_code=status.HTTP_201_CREATED, tags=["Applications"])
async def create_application(body: CreateApplicationRequest, controller: ApplicationsController = Depends(get_controller)):
    return controller.create(body.to_record_data())


@api.get("/applications", tags=["Applications"])
async def list_applications(request: Request, controller: ApplicationsController = Depends(get_controller)):
    query = dict(request.query_params)
    page = query.pop("page", 1)
    limit = query.pop("limit", None)
    return controller.list(query, page=page, limit=limit)


@api.get("/applications/{app_id}", tags=["Applications"])
async def get_application(app_id: str, controller: ApplicationsController = Depends(get_controller)):
    return controller.get(app_id)


@api.put("/applications/{app_id}", tags=["Applications"])
async def update_application(
    app_id: str,
    body: UpdateApplicationRequest,
    controller: ApplicationsController = Depends(get_controller),
):
    return controller.update(app_id, body.to_record_data())


@api.delete("/applications/{app_id}", tags=["Applications"])
async def delete_application(app_id: str, controller: ApplicationsController = Depends(get_controller)):
    controller.delete(app_id)
    return {"message": "Application deleted successfully"}


@api.put("/applications/{app_id}/schema", tags=["Applications"])
async def update_application_schema(
    app_id: str,
    body: UpdateSchemaRequest,
    controller: ApplicationsController = Depends(get_controller),
):
    if body.schema_definition is None:
        raise HTTPException(status_code=400, detail="Schema definition is required")
    return controller.update_schema(app_id, body.schema_definition)


@api.put("/applications/{app_id}/fields", tags=["Applications"])
async def update_application_fields(
    app_id: str,
    body: UpdateDynamicFieldsRequest,
    controller: ApplicationsController = Depends(get_controller),
):
    if body.dynamic_fields is None:
        raise HTTPException(status_code=400, detail="Dynamic fields are required")
    return controller.update_dynamic_fields(app_id, body.dynamic_fields)
