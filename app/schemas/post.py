from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, List, Optional


class PostOut(BaseModel):
    id: int
    advertiser_id: int
    category_id: Optional[int] = None
    type: str
    title: str
    description: Optional[str] = None
    price: Optional[float] = None
    old_price: Optional[float] = None
    with_reservation: bool = False
    reservation_time: Optional[datetime] = None
    reservation_limit: Optional[int] = None
    social_link: Optional[str] = None
    media_url: Optional[str] = None
    created_at: Optional[datetime] = None
    category_name: Optional[str] = None
    advertiser_name: Optional[str] = None

    class Config:
        from_attributes = True


class PostListItem(PostOut):
    reservation_count: int = 0


class PostDetail(PostListItem):
    advertiser_email: Optional[str] = None
    availability: Dict[str, Any]


class PostCreatedResponse(BaseModel):
    message: str
    post: PostOut


class PaginationBase(BaseModel):
    current_page: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class PostPagination(PaginationBase):
    total_posts: int
    posts_per_page: int


class SavedPagination(PaginationBase):
    total_saved: int
    posts_per_page: int


class PostListResponse(BaseModel):
    posts: List[PostListItem]
    pagination: PostPagination


class SavedPostCreate(BaseModel):
    client_id: int
    post_id: int


class SavedPostOut(BaseModel):
    id: int
    client_id: int
    post_id: int
    saved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SavedPostItem(SavedPostOut):
    title: str
    description: Optional[str] = None
    price: Optional[float] = None
    media_url: Optional[str] = None
    type: str
    category_name: Optional[str] = None
    advertiser_name: Optional[str] = None


class SavedPostResponse(BaseModel):
    message: str
    saved_post: SavedPostOut


class SavedPostListResponse(BaseModel):
    saved_posts: List[SavedPostItem]
    pagination: SavedPagination


class ReservationCreate(BaseModel):
    client_id: int


class ReservationOut(BaseModel):
    id: int
    post_id: int
    client_id: int
    status: str
    reserved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReservationResponse(BaseModel):
    message: str
    reservation: ReservationOut


class PostCreate(BaseModel):
    """Multipart form fields for a new post. Required fields are checked by the post service."""
    advertiser_id: Optional[int] = None
    category_id: Optional[int] = None
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    old_price: Optional[float] = None
    with_reservation: bool = False
    reservation_time: Optional[datetime] = None
    reservation_limit: Optional[int] = None
    social_link: Optional[str] = None
