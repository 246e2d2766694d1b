"""Blog routes.

Reading blogs is public; writing one requires a teacher account.
"""

from fastapi import APIRouter, Depends, status

from api.routes.auth import get_current_user
from core.dependencies import BlogManagerDep
from core.responses import api_response
from schemas.blog import BlogInfo, CreateBlogRequest
from schemas.user import CallerContext

router = APIRouter(prefix="/api/blogs", tags=["Blog"])


@router.get("", summary="List published blogs")
def list_blogs(blog_manager: BlogManagerDep):
    blogs = [BlogInfo(**row) for row in blog_manager.list_published()]
    return api_response("Blogs retrieved successfully", {"blogs": blogs})


@router.post("", summary="Write a blog")
def create_blog(
    req: CreateBlogRequest,
    blog_manager: BlogManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    blog = blog_manager.create_blog(
        current_user,
        req.title,
        req.content,
        featured_image=req.featured_image,
        tags=req.tags,
        read_time=req.read_time,
    )
    return api_response(
        "Blog created successfully",
        {"blog": BlogInfo(**blog)},
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/mine", summary="List the caller's blogs")
def list_my_blogs(
    blog_manager: BlogManagerDep,
    current_user: CallerContext = Depends(get_current_user),
):
    blogs = [BlogInfo(**row) for row in blog_manager.list_for_author(current_user.user_id)]
    return api_response("Blogs retrieved successfully", {"blogs": blogs})


@router.get("/{blog_id}", summary="Get a blog")
def get_blog(blog_id: int, blog_manager: BlogManagerDep):
    blog = BlogInfo(**blog_manager.get_blog(blog_id))
    return api_response("Blog retrieved successfully", {"blog": blog})
