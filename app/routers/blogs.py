"""
Blog endpoints: authoring, moderation, engagement and listings
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel

from ..dependencies import admin_required, ensure_db, get_current_user, get_current_user_optional
from ..models.enums import BlogStatus
from ..models.user import User
from ..services.blog_service import BlogInput, BlogService
from ..utils import format_response

router = APIRouter(
    prefix="/api/blogs", tags=["Blogs"], dependencies=[Depends(ensure_db)]
)


class ApproveRequest(BaseModel):
    is_featured: bool = False
    is_hot: bool = False
    is_popular: bool = False


class RejectRequest(BaseModel):
    rejection_reason: Optional[str] = None


def blog_form(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    excerpt: Optional[str] = Form(None),
    slug: Optional[str] = Form(None),
    category: Optional[str] = Form(None, description="Category id or slug"),
    tags: Optional[str] = Form(None, description="Comma separated or JSON list"),
    keywords: Optional[str] = Form(None, description="Comma separated or JSON list"),
    status: Optional[BlogStatus] = Form(None),
    rejection_reason: Optional[str] = Form(None),
    is_featured: Optional[bool] = Form(None),
    is_hot: Optional[bool] = Form(None),
    is_popular: Optional[bool] = Form(None),
    created_at: Optional[datetime] = Form(None),
) -> BlogInput:
    """Multipart form fields shared by create and every update route"""
    return BlogInput(
        title=title,
        description=description,
        excerpt=excerpt,
        slug=slug,
        category=category,
        tags=tags,
        keywords=keywords,
        status=status,
        rejection_reason=rejection_reason,
        is_featured=is_featured,
        is_hot=is_hot,
        is_popular=is_popular,
        created_at=created_at,
    )


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=Dict[str, Any],
    status_code=status.HTTP_201_CREATED,
    summary="Create a blog",
    description="Admins publish directly; everyone else submits for review",
)
async def create_blog(
    background_tasks: BackgroundTasks,
    data: BlogInput = Depends(blog_form),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
):
    blog = await BlogService.create_blog(current_user, data, image, background_tasks)
    message = (
        "Blog published successfully"
        if blog.status == BlogStatus.PUBLISHED
        else "Blog submitted for approval"
    )
    return format_response(message, data=await BlogService.present_one(blog, current_user))


# ---------------------------------------------------------------------------
# Public and personal listings
# ---------------------------------------------------------------------------


@router.get("/published", response_model=Dict[str, Any], summary="List published blogs")
async def list_published_blogs(
    category: Optional[str] = Query(None, description="Category id or slug"),
    featured: Optional[bool] = Query(None),
    hot: Optional[bool] = Query(None),
    popular: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Search title, description and excerpt"),
    page: int = Query(1, ge=1),
    limit: int = Query(9, ge=1, le=100),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    blogs, pagination, trending = await BlogService.list_published(
        category, featured, hot, popular, search, page, limit
    )
    return format_response(
        "Blogs retrieved successfully",
        data=await BlogService.present(blogs, current_user),
        pagination=pagination,
        trending=await BlogService.present(trending, current_user),
    )


@router.get("/slug/{slug}", response_model=Dict[str, Any], summary="Read a blog by slug")
async def get_blog_by_slug(
    slug: str, current_user: Optional[User] = Depends(get_current_user_optional)
):
    blog, related = await BlogService.read_by_slug(current_user, slug)
    return format_response(
        data=await BlogService.present_one(blog, current_user),
        related=await BlogService.present(related, current_user),
    )


@router.get("/my-blogs", response_model=Dict[str, Any], summary="List the caller's blogs")
async def list_my_blogs(
    blog_status: Optional[BlogStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
):
    blogs, pagination, stats = await BlogService.list_for_owner(
        current_user, blog_status, page, limit
    )
    return format_response(
        data=await BlogService.present(blogs, current_user),
        pagination=pagination,
        stats=stats,
    )


@router.get(
    "/my-bookmarks", response_model=Dict[str, Any], summary="List blogs the caller bookmarked"
)
async def list_my_bookmarks(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
):
    blogs, pagination = await BlogService.list_bookmarks(current_user, page, limit)
    return format_response(
        data=await BlogService.present(blogs, current_user), pagination=pagination
    )


@router.get(
    "/stats",
    response_model=Dict[str, Any],
    summary="Blog counts per status",
    description="The caller's own blogs; admins see every blog",
)
async def blog_stats(current_user: User = Depends(get_current_user)):
    return format_response(data=await BlogService.stats_for(current_user))


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/", response_model=Dict[str, Any], summary="List all blogs (admin)")
async def admin_list_blogs(
    blog_status: Optional[BlogStatus] = Query(None, alias="status"),
    category: Optional[str] = Query(None, description="Category id or slug"),
    user: Optional[str] = Query(None, description="Author id"),
    search: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(admin_required),
):
    blogs, pagination, stats = await BlogService.admin_list(
        blog_status, category, user, search, sort_by, order, page, limit
    )
    return format_response(
        data=await BlogService.present(blogs, current_user),
        pagination=pagination,
        stats=stats,
    )


@router.get("/pending", response_model=Dict[str, Any], summary="Pending review queue (admin)")
async def list_pending_blogs(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(admin_required),
):
    blogs, pagination = await BlogService.list_pending(search, page, limit)
    return format_response(
        data=await BlogService.present(blogs, current_user), pagination=pagination
    )


@router.put("/approve/{blog_id}", response_model=Dict[str, Any], summary="Approve a blog")
async def approve_blog(
    blog_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[ApproveRequest] = None,
    current_user: User = Depends(admin_required),
):
    body = body or ApproveRequest()
    blog = await BlogService.approve_blog(
        current_user,
        blog_id,
        body.is_featured,
        body.is_hot,
        body.is_popular,
        background_tasks,
    )
    return format_response(
        "Blog approved successfully", data=await BlogService.present_one(blog, current_user)
    )


@router.put("/reject/{blog_id}", response_model=Dict[str, Any], summary="Reject a blog")
async def reject_blog(
    blog_id: str,
    body: Optional[RejectRequest] = None,
    current_user: User = Depends(admin_required),
):
    reason = body.rejection_reason if body else None
    blog = await BlogService.reject_blog(current_user, blog_id, reason)
    return format_response(
        "Blog rejected successfully", data=await BlogService.present_one(blog, current_user)
    )


@router.put(
    "/admin/{blog_id}",
    response_model=Dict[str, Any],
    summary="Edit any blog (admin)",
    description="Admin edit with explicit status, promotion flags and backdating",
)
async def admin_update_blog(
    blog_id: str,
    background_tasks: BackgroundTasks,
    data: BlogInput = Depends(blog_form),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(admin_required),
):
    blog = await BlogService.admin_update_blog(
        current_user, blog_id, data, image, background_tasks
    )
    return format_response(
        "Blog updated successfully", data=await BlogService.present_one(blog, current_user)
    )


@router.delete(
    "/admin/{blog_id}", response_model=Dict[str, Any], summary="Permanently delete a blog"
)
async def admin_delete_blog(
    blog_id: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(admin_required),
):
    await BlogService.admin_delete_blog(current_user, blog_id, background_tasks)
    return format_response("Blog permanently deleted")


# ---------------------------------------------------------------------------
# Owner
# ---------------------------------------------------------------------------


@router.get("/user/{blog_id}", response_model=Dict[str, Any], summary="Edit view of own blog")
async def get_own_blog(blog_id: str, current_user: User = Depends(get_current_user)):
    blog = await BlogService.get_own_blog(current_user, blog_id)
    return format_response(data=await BlogService.present_one(blog, current_user))


@router.put(
    "/user/{blog_id}",
    response_model=Dict[str, Any],
    summary="Edit own blog",
    description="The blog goes back to review after every author edit",
)
async def update_own_blog(
    blog_id: str,
    background_tasks: BackgroundTasks,
    data: BlogInput = Depends(blog_form),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
):
    blog = await BlogService.update_own_blog(
        current_user, blog_id, data, image, background_tasks
    )
    return format_response(
        "Blog updated and submitted for approval",
        data=await BlogService.present_one(blog, current_user),
    )


@router.put(
    "/request-reapproval/{blog_id}",
    response_model=Dict[str, Any],
    summary="Send a rejected blog back to review",
)
async def request_reapproval(blog_id: str, current_user: User = Depends(get_current_user)):
    blog = await BlogService.request_reapproval(current_user, blog_id)
    return format_response(
        "Blog submitted for re-approval",
        data=await BlogService.present_one(blog, current_user),
    )


# ---------------------------------------------------------------------------
# Single blog
# ---------------------------------------------------------------------------


@router.get("/{blog_id}", response_model=Dict[str, Any], summary="Get a blog by id")
async def get_blog(
    blog_id: str, current_user: Optional[User] = Depends(get_current_user_optional)
):
    blog = await BlogService.get_blog(current_user, blog_id)
    return format_response(data=await BlogService.present_one(blog, current_user))


@router.put("/{blog_id}", response_model=Dict[str, Any], summary="Update a blog")
async def update_blog(
    blog_id: str,
    background_tasks: BackgroundTasks,
    data: BlogInput = Depends(blog_form),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
):
    blog = await BlogService.update_blog(current_user, blog_id, data, image, background_tasks)
    return format_response(
        "Blog updated successfully", data=await BlogService.present_one(blog, current_user)
    )


@router.delete("/{blog_id}", response_model=Dict[str, Any], summary="Delete a blog")
async def delete_blog(blog_id: str, current_user: User = Depends(get_current_user)):
    await BlogService.delete_blog(current_user, blog_id)
    return format_response("Blog deleted successfully")


@router.put("/{blog_id}/like", response_model=Dict[str, Any], summary="Toggle like")
async def toggle_like(blog_id: str, current_user: User = Depends(get_current_user)):
    likes, liked = await BlogService.toggle_like(current_user, blog_id)
    return format_response(
        "Blog liked" if liked else "Blog unliked",
        data={"likes": likes, "is_liked": liked},
    )


@router.put("/{blog_id}/bookmark", response_model=Dict[str, Any], summary="Toggle bookmark")
async def toggle_bookmark(blog_id: str, current_user: User = Depends(get_current_user)):
    bookmarks, bookmarked = await BlogService.toggle_bookmark(current_user, blog_id)
    return format_response(
        "Blog bookmarked" if bookmarked else "Bookmark removed",
        data={"bookmarks": bookmarks, "is_bookmarked": bookmarked},
    )
