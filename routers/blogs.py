from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from app.dependencies import get_blog_repository, get_owner_id
from schemas.blogs import BlogResponse
from services.blog_repository import SQLAlchemyBlogRepository

router = APIRouter(tags=["blogs"])


@router.get("/blogs", response_model=list[BlogResponse])
async def list_blogs(
    owner_id: str | None = Depends(get_owner_id),
    repository: SQLAlchemyBlogRepository = Depends(get_blog_repository),
) -> list[BlogResponse]:
    blogs = await repository.list_for_owner(owner_id)
    return [BlogResponse.model_validate(blog) for blog in blogs]


@router.get("/blogs/{blog_id}", response_model=BlogResponse)
async def get_blog(
    blog_id: str,
    owner_id: str | None = Depends(get_owner_id),
    repository: SQLAlchemyBlogRepository = Depends(get_blog_repository),
) -> BlogResponse:
    blog = await repository.get(blog_id, owner_id)
    if blog is None:
        raise HTTPException(status_code=404, detail="Blog not found.")
    return BlogResponse.model_validate(blog)


@router.delete("/blogs/{blog_id}", status_code=204)
async def delete_blog(
    blog_id: str,
    owner_id: str | None = Depends(get_owner_id),
    repository: SQLAlchemyBlogRepository = Depends(get_blog_repository),
) -> Response:
    if not await repository.delete(blog_id, owner_id):
        raise HTTPException(status_code=404, detail="Blog not found.")
    return Response(status_code=204)
