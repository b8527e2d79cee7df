from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status

from ..dependencies import admin_required, ensure_db
from ..models.user import User
from ..services.category_service import CategoryService, category_to_dict
from ..utils import format_response

router = APIRouter(
    prefix="/api/blog-categories",
    tags=["Blog Categories"],
    dependencies=[Depends(ensure_db)],
)


@router.get("/", response_model=Dict[str, Any], summary="List categories")
async def list_categories(
    category_status: Optional[bool] = Query(None, alias="status", description="Enabled flag"),
    search: Optional[str] = Query(None, description="Search name or description"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    categories, pagination = await CategoryService.list_categories(
        category_status, search, page, limit
    )
    return format_response(data=categories, pagination=pagination)


@router.get(
    "/with-count",
    response_model=Dict[str, Any],
    summary="Enabled categories with their published blog count",
)
async def list_categories_with_count():
    return format_response(data=await CategoryService.list_with_counts())


@router.get("/{slug}", response_model=Dict[str, Any], summary="Get a category by slug")
async def get_category(slug: str):
    category = await CategoryService.get_by_slug(slug)
    return format_response(data=category_to_dict(category))


@router.post(
    "/",
    response_model=Dict[str, Any],
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
)
async def create_category(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(admin_required),
):
    category = await CategoryService.create_category(current_user, name, description, image)
    return format_response("Blog category created successfully", data=category_to_dict(category))


@router.put("/{category_id}", response_model=Dict[str, Any], summary="Update a category")
async def update_category(
    category_id: str,
    background_tasks: BackgroundTasks,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category_status: Optional[bool] = Form(None, alias="status"),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(admin_required),
):
    category = await CategoryService.update_category(
        current_user,
        category_id,
        background_tasks,
        name=name,
        description=description,
        status=category_status,
        image=image,
    )
    return format_response("Blog category updated successfully", data=category_to_dict(category))


@router.delete("/{category_id}", response_model=Dict[str, Any], summary="Delete a category")
async def delete_category(
    category_id: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(admin_required),
):
    await CategoryService.delete_category(current_user, category_id, background_tasks)
    return format_response("Blog category deleted successfully")
