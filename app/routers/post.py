from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from app.core.media import get_media_uploader
from app.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PageRequest
from app.core.security import get_optional_user
from app.crud import post as crud
from app.db.session import get_db
from app.schemas.post import (
    PostCreate, PostCreatedResponse, PostDetail, PostListResponse, ReservationCreate,
    ReservationResponse, SavedPostCreate, SavedPostListResponse, SavedPostResponse,
)
from app.schemas.token import TokenData

router = APIRouter()


def get_page(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> PageRequest:
    return PageRequest(page=page, limit=limit)


@router.post("", response_model=PostCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    advertiser_id: Optional[int] = Form(None),
    category_id: Optional[int] = Form(None),
    type: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    old_price: Optional[float] = Form(None),
    with_reservation: bool = Form(False),
    reservation_time: Optional[datetime] = Form(None),
    reservation_limit: Optional[int] = Form(None),
    social_link: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: Optional[TokenData] = Depends(get_optional_user),
    uploader=Depends(get_media_uploader),
):
    data = PostCreate(
        advertiser_id=advertiser_id,
        category_id=category_id,
        type=type,
        title=title,
        description=description,
        price=price,
        old_price=old_price,
        with_reservation=with_reservation,
        reservation_time=reservation_time,
        reservation_limit=reservation_limit,
        social_link=social_link,
    )
    post = crud.create_post(db, data, file, current_user, uploader)
    return {"message": "Post created successfully", "post": post}


@router.get("", response_model=PostListResponse)
def list_posts(
    category_id: Optional[int] = None,
    type: Optional[str] = None,
    with_reservation: Optional[bool] = None,
    page: PageRequest = Depends(get_page),
    db: Session = Depends(get_db),
):
    filters = crud.PostFilters(category_id=category_id, type=type, with_reservation=with_reservation)
    return crud.list_posts(db, filters, page)


@router.get("/advertiser/{advertiser_id}", response_model=PostListResponse)
def list_posts_by_advertiser(
    advertiser_id: int,
    page: PageRequest = Depends(get_page),
    db: Session = Depends(get_db),
):
    return crud.list_posts_by_advertiser(db, advertiser_id, page)


@router.post("/save", response_model=SavedPostResponse, status_code=status.HTTP_201_CREATED)
def save_post(saved_in: SavedPostCreate, db: Session = Depends(get_db)):
    saved_post = crud.save_post(db, saved_in)
    return {"message": "Post saved successfully", "saved_post": saved_post}


@router.get("/saved/{client_id}", response_model=SavedPostListResponse)
def list_saved_posts(
    client_id: int,
    page: PageRequest = Depends(get_page),
    db: Session = Depends(get_db),
):
    return crud.list_saved_posts(db, client_id, page)


@router.delete("/saved/{client_id}/{post_id}")
def unsave_post(client_id: int, post_id: int, db: Session = Depends(get_db)):
    crud.unsave_post(db, client_id, post_id)
    return {"message": "Post removed from saved posts"}


@router.get("/{post_id}", response_model=PostDetail)
def get_post_details(post_id: int, db: Session = Depends(get_db)):
    return crud.get_post_details(db, post_id)


@router.get("/{post_id}/engagement")
def get_post_engagement(post_id: int, db: Session = Depends(get_db)):
    return crud.get_post_engagement(db, post_id)


@router.post("/{post_id}/reservations", response_model=ReservationResponse,
             status_code=status.HTTP_201_CREATED)
def reserve_post(post_id: int, reservation_in: ReservationCreate, db: Session = Depends(get_db)):
    reservation = crud.reserve_post(db, post_id, reservation_in)
    return {"message": "Reservation created successfully", "reservation": reservation}
