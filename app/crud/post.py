import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from fastapi import UploadFile
from sqlalchemy import and_, func, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.errors import (
    AuthError, ConflictError, ForbiddenError, InternalError, NotFoundError, ValidationError,
)
from app.core.media import MediaUploadError, remove_temp_file, save_upload_to_temp
from app.core.pagination import PageRequest, build_pagination
from app.db.base import utcnow
from app.db.errors import is_unique_violation
from app.db.models.category import Category
from app.db.models.post import Post, POST_TYPES
from app.db.models.reservation import Reservation, STATUS_ACTIVE
from app.db.models.saved_post import SavedPost
from app.db.models.user import User, ROLE_ADMIN, ROLE_ADVERTISER
from app.schemas.post import PostCreate, ReservationCreate, SavedPostCreate
from app.schemas.token import TokenData

logger = logging.getLogger(__name__)


@dataclass
class PostFilters:
    """Optional listing filters. Only the fields that were provided become predicates."""
    category_id: Optional[int] = None
    type: Optional[str] = None
    with_reservation: Optional[bool] = None

    def clauses(self) -> list:
        clauses = []
        if self.category_id is not None:
            clauses.append(Post.category_id == self.category_id)
        if self.type is not None:
            clauses.append(Post.type == self.type)
        if self.with_reservation is not None:
            clauses.append(Post.with_reservation == self.with_reservation)
        return clauses


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Some drivers hand back naive timestamps; they are stored as UTC
    if value is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_availability(with_reservation: bool, reservation_limit: Optional[int],
                         reservation_time: Optional[datetime], reservation_count: int,
                         now: Optional[datetime] = None) -> dict:
    if not with_reservation:
        return {"accepts_reservations": False}

    now = now or utcnow()
    available_slots = reservation_limit - reservation_count if reservation_limit else None
    return {
        "accepts_reservations": True,
        "current_reservations": reservation_count,
        "available_slots": available_slots,
        "is_available": not reservation_limit or available_slots > 0,
        "is_expired": reservation_time is not None and now > as_utc(reservation_time),
    }


def _post_columns(post: Post) -> dict:
    return {column.key: getattr(post, column.key) for column in Post.__table__.columns}


def _active_reservation_join():
    return and_(Reservation.post_id == Post.id, Reservation.status == STATUS_ACTIVE)


def _get_post_with_names(db: Session, post_id: int) -> dict:
    post, category_name, advertiser_name = (
        db.query(Post, Category.name.label("category_name"), User.name.label("advertiser_name"))
        .outerjoin(Category, Post.category_id == Category.id)
        .join(User, Post.advertiser_id == User.id)
        .filter(Post.id == post_id)
        .one()
    )
    return {**_post_columns(post), "category_name": category_name, "advertiser_name": advertiser_name}


def _validate_new_post(data: PostCreate, file: Optional[UploadFile]):
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")
    if not data.advertiser_id or not data.type or not data.title:
        raise ValidationError("advertiser_id, type, and title are required")
    if data.type not in POST_TYPES:
        raise ValidationError('type must be either "reel" or "post"')


def _validate_reservation_terms(data: PostCreate):
    if not data.with_reservation:
        return
    if data.reservation_time is not None and as_utc(data.reservation_time) <= utcnow():
        raise ValidationError("Reservation time must be in the future")
    if data.reservation_limit is not None and data.reservation_limit <= 0:
        raise ValidationError("Reservation limit must be greater than 0")


def create_post(db: Session, data: PostCreate, file: Optional[UploadFile],
                caller: Optional[TokenData], uploader) -> dict:
    _validate_new_post(data, file)

    try:
        advertiser = db.query(User).filter(User.id == data.advertiser_id).first()
    except SQLAlchemyError as e:
        logger.error(f"Advertiser lookup failed: {str(e)}")
        raise InternalError("Post creation failed")
    if advertiser is None:
        raise NotFoundError("Advertiser not found")

    if caller is None:
        raise AuthError("Unauthorized")
    if caller.role != ROLE_ADMIN and caller.id != data.advertiser_id:
        raise ForbiddenError("Forbidden: cannot create posts for another advertiser")
    if advertiser.role not in (ROLE_ADVERTISER, ROLE_ADMIN):
        raise ForbiddenError("Only advertisers can publish posts")

    _validate_reservation_terms(data)

    try:
        tmp_path = save_upload_to_temp(file)
    except OSError as e:
        logger.error(f"Could not spool upload: {e}")
        raise InternalError("Post creation failed")

    try:
        try:
            media = uploader.upload(tmp_path)
        except MediaUploadError as e:
            logger.error(f"Cloudinary Error: {str(e)}")
            raise InternalError("Media upload failed")

        post = Post(
            advertiser_id=data.advertiser_id,
            category_id=data.category_id,
            type=data.type,
            title=data.title,
            description=data.description,
            price=data.price,
            old_price=data.old_price,
            with_reservation=data.with_reservation,
            reservation_time=as_utc(data.reservation_time),
            reservation_limit=data.reservation_limit,
            social_link=data.social_link,
            media_url=media.url,
        )
        try:
            db.add(post)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error: {str(e)}")
            # Cleanup uploaded media if database operation failed
            uploader.destroy(media)
            raise InternalError("Post creation failed")
    finally:
        remove_temp_file(tmp_path)

    try:
        return _get_post_with_names(db, post.id)
    except SQLAlchemyError as e:
        logger.error(f"Error loading created post {post.id}: {str(e)}")
        raise InternalError("Post creation failed")


def list_posts(db: Session, filters: PostFilters, page: PageRequest) -> dict:
    clauses = filters.clauses()
    try:
        rows = (
            db.query(
                Post,
                Category.name.label("category_name"),
                User.name.label("advertiser_name"),
                func.count(Reservation.id).label("reservation_count"),
            )
            .outerjoin(Category, Post.category_id == Category.id)
            .join(User, Post.advertiser_id == User.id)
            .outerjoin(Reservation, _active_reservation_join())
            .filter(*clauses)
            .group_by(Post.id, Category.name, User.name)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset(page.offset)
            .limit(page.limit)
            .all()
        )
        # Separate round trip; may drift from the page under concurrent writes
        total = db.query(func.count(Post.id)).filter(*clauses).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving posts: {str(e)}")
        raise InternalError("Failed to retrieve posts")

    return {
        "posts": [
            {
                **_post_columns(post),
                "category_name": category_name,
                "advertiser_name": advertiser_name,
                "reservation_count": reservation_count,
            }
            for post, category_name, advertiser_name, reservation_count in rows
        ],
        "pagination": build_pagination(page, total),
    }


def get_post_details(db: Session, post_id: int) -> dict:
    try:
        row = (
            db.query(
                Post,
                Category.name.label("category_name"),
                User.name.label("advertiser_name"),
                User.email.label("advertiser_email"),
                func.count(Reservation.id).label("reservation_count"),
            )
            .outerjoin(Category, Post.category_id == Category.id)
            .join(User, Post.advertiser_id == User.id)
            .outerjoin(Reservation, _active_reservation_join())
            .filter(Post.id == post_id)
            .group_by(Post.id, Category.name, User.name, User.email)
            .first()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving post details: {str(e)}")
        raise InternalError("Failed to retrieve post details")

    if row is None:
        raise NotFoundError("Post not found")

    post, category_name, advertiser_name, advertiser_email, reservation_count = row
    return {
        **_post_columns(post),
        "category_name": category_name,
        "advertiser_name": advertiser_name,
        "advertiser_email": advertiser_email,
        "reservation_count": reservation_count,
        "availability": compute_availability(
            post.with_reservation,
            post.reservation_limit,
            post.reservation_time,
            reservation_count,
        ),
    }


def list_posts_by_advertiser(db: Session, advertiser_id: int, page: PageRequest) -> dict:
    try:
        # Counts every reservation, whatever its status
        rows = (
            db.query(
                Post,
                Category.name.label("category_name"),
                func.count(Reservation.id).label("reservation_count"),
            )
            .outerjoin(Category, Post.category_id == Category.id)
            .outerjoin(Reservation, Reservation.post_id == Post.id)
            .filter(Post.advertiser_id == advertiser_id)
            .group_by(Post.id, Category.name)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset(page.offset)
            .limit(page.limit)
            .all()
        )
        total = db.query(func.count(Post.id)).filter(Post.advertiser_id == advertiser_id).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving advertiser posts: {str(e)}")
        raise InternalError("Failed to retrieve posts")

    return {
        "posts": [
            {**_post_columns(post), "category_name": category_name, "reservation_count": reservation_count}
            for post, category_name, reservation_count in rows
        ],
        "pagination": build_pagination(page, total),
    }


def save_post(db: Session, data: SavedPostCreate) -> SavedPost:
    try:
        post_exists = db.query(Post.id).filter(Post.id == data.post_id).first()
        client_exists = db.query(User.id).filter(User.id == data.client_id).first()
        already_saved = db.query(SavedPost.id).filter(
            SavedPost.client_id == data.client_id,
            SavedPost.post_id == data.post_id,
        ).first()
    except SQLAlchemyError as e:
        logger.error(f"Error saving post: {str(e)}")
        raise InternalError("Failed to save post")

    if post_exists is None:
        raise NotFoundError("Post not found")
    if client_exists is None:
        raise NotFoundError("Client not found")
    if already_saved is not None:
        raise ConflictError("Post already saved")

    saved_post = SavedPost(client_id=data.client_id, post_id=data.post_id)
    try:
        db.add(saved_post)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # Lost a race with an identical save
        if is_unique_violation(e):
            raise ConflictError("Post already saved")
        logger.error(f"Error saving post: {e.orig}")
        raise InternalError("Failed to save post")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving post: {str(e)}")
        raise InternalError("Failed to save post")
    db.refresh(saved_post)
    return saved_post


def unsave_post(db: Session, client_id: int, post_id: int):
    try:
        deleted = db.query(SavedPost).filter(
            SavedPost.client_id == client_id,
            SavedPost.post_id == post_id,
        ).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error removing saved post: {str(e)}")
        raise InternalError("Failed to remove saved post")
    if not deleted:
        raise NotFoundError("Saved post not found")


def list_saved_posts(db: Session, client_id: int, page: PageRequest) -> dict:
    try:
        rows = (
            db.query(
                SavedPost,
                Post.title,
                Post.description,
                Post.price,
                Post.media_url,
                Post.type,
                Category.name.label("category_name"),
                User.name.label("advertiser_name"),
            )
            .join(Post, SavedPost.post_id == Post.id)
            .outerjoin(Category, Post.category_id == Category.id)
            .join(User, Post.advertiser_id == User.id)
            .filter(SavedPost.client_id == client_id)
            .order_by(SavedPost.saved_at.desc(), SavedPost.id.desc())
            .offset(page.offset)
            .limit(page.limit)
            .all()
        )
        total = db.query(func.count(SavedPost.id)).filter(SavedPost.client_id == client_id).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving saved posts: {str(e)}")
        raise InternalError("Failed to retrieve saved posts")

    saved_posts = []
    for saved, title, description, price, media_url, post_type, category_name, advertiser_name in rows:
        saved_posts.append({
            "id": saved.id,
            "client_id": saved.client_id,
            "post_id": saved.post_id,
            "saved_at": saved.saved_at,
            "title": title,
            "description": description,
            "price": price,
            "media_url": media_url,
            "type": post_type,
            "category_name": category_name,
            "advertiser_name": advertiser_name,
        })

    return {
        "saved_posts": saved_posts,
        "pagination": build_pagination(page, total, total_key="total_saved"),
    }


def get_post_engagement(db: Session, post_id: int) -> dict:
    try:
        row = db.execute(
            text("SELECT * FROM v_post_engagement WHERE post_id = :post_id"),
            {"post_id": post_id},
        ).mappings().first()
    except SQLAlchemyError as e:
        logger.error(f"Error retrieving post engagement: {str(e)}")
        raise InternalError("Failed to retrieve post engagement")
    if row is None:
        raise NotFoundError("Post not found")
    return dict(row)


def reserve_post(db: Session, post_id: int, data: ReservationCreate) -> Reservation:
    """Claim one slot on a post that accepts reservations.

    The slot check and the insert are not atomic: concurrent requests can
    both pass the check and overshoot reservation_limit.
    """
    try:
        post = db.query(Post).filter(Post.id == post_id).first()
        client_exists = db.query(User.id).filter(User.id == data.client_id).first()
        active_count = db.query(func.count(Reservation.id)).filter(
            Reservation.post_id == post_id,
            Reservation.status == STATUS_ACTIVE,
        ).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Error reserving post: {str(e)}")
        raise InternalError("Failed to reserve post")

    if post is None:
        raise NotFoundError("Post not found")
    if client_exists is None:
        raise NotFoundError("Client not found")
    if not post.with_reservation:
        raise ValidationError("Post does not accept reservations")
    if post.reservation_time is not None and utcnow() > as_utc(post.reservation_time):
        raise ValidationError("Reservation period has ended")
    if post.reservation_limit and active_count >= post.reservation_limit:
        raise ConflictError("No available slots for this post")

    reservation = Reservation(post_id=post_id, client_id=data.client_id, status=STATUS_ACTIVE)
    try:
        db.add(reservation)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error reserving post: {str(e)}")
        raise InternalError("Failed to reserve post")
    db.refresh(reservation)
    return reservation
