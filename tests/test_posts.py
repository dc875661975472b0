# Tests for post creation, listing, details, saves, reservations and engagement.
# Media uploads go through FakeUploader; everything else runs against the
# in-memory database through the public routes.

from datetime import datetime, timedelta, timezone
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from app.core.media import get_media_uploader
from app.core.security import create_access_token
from app.crud.post import as_utc
from app.db.models.category import Category
from app.db.models.comment import Comment
from app.db.models.post import Post
from app.db.models.reservation import Reservation, STATUS_ACTIVE, STATUS_CANCELLED
from app.db.models.saved_post import SavedPost
from main import app
from tests.support import (
    FakeUploader, auth_header, create_post, file_exists, future, login, past, register, signup_and_login,
)


def _advertiser(client, email="ads@example.com", name="Acme Ads"):
    return signup_and_login(client, email, kind="advertiser", name=name)


def _client_user(client, email="client@example.com"):
    return register(client, name="Client", email=email, kind="user").json()


def _category(db_session, name="Boats"):
    category = Category(name=name)
    db_session.add(category)
    db_session.commit()
    return category.id


def _add_reservations(db_session, post_id, client_id, count, status=STATUS_ACTIVE):
    for _ in range(count):
        db_session.add(Reservation(post_id=post_id, client_id=client_id, status=status))
    db_session.commit()


# Creation

def test_create_post_uploads_media_and_joins_names(client, uploader, db_session):
    category_id = _category(db_session)
    advertiser, token = _advertiser(client)

    response = create_post(client, token, advertiser["id"], category_id=category_id,
                           description="Two hours at sea", price="49.90", social_link="https://ig.example/p/1")

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Post created successfully"
    post = body["post"]
    assert post["advertiser_id"] == advertiser["id"]
    assert post["advertiser_name"] == "Acme Ads"
    assert post["category_name"] == "Boats"
    assert post["media_url"] == "https://res.cloudinary.com/demo/posts/media_1.jpg"
    assert post["price"] == 49.9
    assert post["with_reservation"] is False
    assert uploader.seen_contents == [b"fake-image-bytes"]


def test_create_post_removes_temporary_file(client, uploader):
    advertiser, token = _advertiser(client)

    create_post(client, token, advertiser["id"])

    assert len(uploader.uploaded_paths) == 1
    assert not file_exists(uploader.uploaded_paths[0])


def test_create_post_requires_file(client, uploader):
    advertiser, token = _advertiser(client)

    response = create_post(client, token, advertiser["id"], filename=None)

    assert response.status_code == 400
    assert response.json() == {"error": "No file uploaded"}
    assert uploader.uploaded_paths == []


def test_create_post_requires_core_fields(client):
    advertiser, token = _advertiser(client)

    response = client.post(
        "/api/posts",
        data={"advertiser_id": str(advertiser["id"]), "type": "post"},
        files={"file": ("photo.jpg", b"x", "image/jpeg")},
        headers=auth_header(token),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "advertiser_id, type, and title are required"}


def test_create_post_rejects_unknown_type(client):
    advertiser, token = _advertiser(client)

    response = create_post(client, token, advertiser["id"], post_type="story")

    assert response.status_code == 400
    assert response.json() == {"error": 'type must be either "reel" or "post"'}


def test_create_post_for_missing_advertiser_is_404(client):
    _, token = _advertiser(client)

    response = create_post(client, token, 4242)

    assert response.status_code == 404
    assert response.json() == {"error": "Advertiser not found"}


def test_create_post_without_caller_is_401(client, uploader):
    advertiser, _ = _advertiser(client)

    response = create_post(client, None, advertiser["id"])

    assert response.status_code == 401
    assert uploader.uploaded_paths == []


def test_create_post_for_another_advertiser_is_403(client):
    acme, _ = _advertiser(client)
    _, rival_token = _advertiser(client, email="rival@example.com", name="Rival")

    response = create_post(client, rival_token, acme["id"])

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden: cannot create posts for another advertiser"}


def test_admin_can_post_on_behalf_of_advertiser(client):
    advertiser, _ = _advertiser(client)
    admin_token = create_access_token(user_id=999, role="admin")

    response = create_post(client, admin_token, advertiser["id"])

    assert response.status_code == 201
    assert response.json()["post"]["advertiser_id"] == advertiser["id"]


def test_plain_users_cannot_publish(client):
    user, token = signup_and_login(client, "client@example.com", kind="user")

    response = create_post(client, token, user["id"])

    assert response.status_code == 403


def test_reservation_time_must_be_in_the_future(client, uploader):
    advertiser, token = _advertiser(client)

    response = create_post(client, token, advertiser["id"], with_reservation="true", reservation_time=past())

    assert response.status_code == 400
    assert response.json() == {"error": "Reservation time must be in the future"}
    assert uploader.uploaded_paths == []


def test_reservation_limit_must_be_positive(client):
    advertiser, token = _advertiser(client)

    zero = create_post(client, token, advertiser["id"], with_reservation="true", reservation_limit=0)
    negative = create_post(client, token, advertiser["id"], with_reservation="true", reservation_limit=-3)

    assert zero.status_code == negative.status_code == 400
    assert zero.json() == {"error": "Reservation limit must be greater than 0"}


def test_reservation_terms_are_not_checked_without_reservations(client):
    advertiser, token = _advertiser(client)

    response = create_post(client, token, advertiser["id"], with_reservation="false", reservation_limit=0)

    assert response.status_code == 201


def test_upload_failure_is_500_and_persists_nothing(client, db_session):
    advertiser, token = _advertiser(client)
    app.dependency_overrides[get_media_uploader] = lambda: FakeUploader(fail=True)

    response = create_post(client, token, advertiser["id"])

    assert response.status_code == 500
    assert response.json() == {"error": "Media upload failed"}
    assert db_session.query(Post).count() == 0


def test_store_failure_destroys_uploaded_media(client, uploader, db_session, monkeypatch):
    advertiser, token = _advertiser(client)
    original_commit = Session.commit

    def commit_failing_on_posts(self):
        if any(isinstance(obj, Post) for obj in self.new):
            raise OperationalError("INSERT INTO posts", {}, Exception("connection reset"))
        return original_commit(self)

    monkeypatch.setattr(Session, "commit", commit_failing_on_posts)

    response = create_post(client, token, advertiser["id"])

    assert response.status_code == 500
    assert response.json() == {"error": "Post creation failed"}
    assert uploader.destroyed == ["posts/media_1"]
    assert not file_exists(uploader.uploaded_paths[0])
    assert db_session.query(Post).count() == 0


def test_reservation_time_is_stored_in_utc(client, db_session):
    advertiser, token = _advertiser(client)
    local = datetime(2099, 1, 1, 8, 0, tzinfo=timezone(timedelta(hours=-5)))

    post = create_post(client, token, advertiser["id"], with_reservation="true",
                       reservation_time=local.isoformat()).json()["post"]

    stored = db_session.get(Post, post["id"]).reservation_time
    assert as_utc(stored) == datetime(2099, 1, 1, 13, 0, tzinfo=timezone.utc)


# Listing

def test_list_posts_paginates_newest_first(client):
    advertiser, token = _advertiser(client)
    for title in ("first", "second", "third"):
        create_post(client, token, advertiser["id"], title=title)

    page_one = client.get("/api/posts?page=1&limit=2").json()
    page_two = client.get("/api/posts?page=2&limit=2").json()

    assert [p["title"] for p in page_one["posts"]] == ["third", "second"]
    assert [p["title"] for p in page_two["posts"]] == ["first"]
    assert page_one["pagination"] == {
        "current_page": 1,
        "total_pages": 2,
        "total_posts": 3,
        "posts_per_page": 2,
        "has_next_page": True,
        "has_prev_page": False,
    }
    assert page_two["pagination"]["has_next_page"] is False
    assert page_two["pagination"]["has_prev_page"] is True


def test_list_posts_applies_only_given_filters(client, db_session):
    boats = _category(db_session, "Boats")
    food = _category(db_session, "Food")
    advertiser, token = _advertiser(client)
    create_post(client, token, advertiser["id"], title="boat reel", post_type="reel", category_id=boats)
    create_post(client, token, advertiser["id"], title="boat post", category_id=boats,
                with_reservation="true", reservation_limit=3)
    create_post(client, token, advertiser["id"], title="no category")
    create_post(client, token, advertiser["id"], title="food post", category_id=food)

    def titles(query):
        return sorted(p["title"] for p in client.get(f"/api/posts{query}").json()["posts"])

    assert titles("") == ["boat post", "boat reel", "food post", "no category"]
    assert titles(f"?category_id={boats}") == ["boat post", "boat reel"]
    assert titles("?type=reel") == ["boat reel"]
    assert titles(f"?category_id={boats}&type=post") == ["boat post"]
    assert titles("?with_reservation=true") == ["boat post"]
    assert titles("?with_reservation=false") == ["boat reel", "food post", "no category"]


def test_list_posts_counts_only_active_reservations(client, db_session):
    advertiser, token = _advertiser(client)
    customer = _client_user(client)
    post = create_post(client, token, advertiser["id"], with_reservation="true", reservation_limit=5).json()["post"]
    _add_reservations(db_session, post["id"], customer["id"], 2)
    _add_reservations(db_session, post["id"], customer["id"], 1, status=STATUS_CANCELLED)

    listed = client.get("/api/posts").json()["posts"][0]

    assert listed["reservation_count"] == 2
    assert listed["advertiser_name"] == "Acme Ads"


def test_list_posts_rejects_bad_paging(client):
    assert client.get("/api/posts?page=0").status_code == 400
    assert client.get("/api/posts?limit=0").status_code == 400
    assert client.get("/api/posts?limit=101").status_code == 400


def test_empty_listing_has_zero_pages(client):
    body = client.get("/api/posts").json()

    assert body["posts"] == []
    assert body["pagination"]["total_pages"] == 0
    assert body["pagination"]["has_next_page"] is False


def test_posts_by_advertiser_count_every_reservation(client, db_session):
    acme, acme_token = _advertiser(client)
    rival, rival_token = _advertiser(client, email="rival@example.com", name="Rival")
    customer = _client_user(client)
    post = create_post(client, acme_token, acme["id"], title="acme", with_reservation="true").json()["post"]
    create_post(client, rival_token, rival["id"], title="rival")
    _add_reservations(db_session, post["id"], customer["id"], 1)
    _add_reservations(db_session, post["id"], customer["id"], 2, status=STATUS_CANCELLED)

    response = client.get(f"/api/posts/advertiser/{acme['id']}")

    assert response.status_code == 200
    body = response.json()
    assert [p["title"] for p in body["posts"]] == ["acme"]
    assert body["posts"][0]["reservation_count"] == 3
    assert body["pagination"]["total_posts"] == 1


# Details

def test_details_for_post_without_reservations(client):
    advertiser, token = _advertiser(client)
    post = create_post(client, token, advertiser["id"]).json()["post"]

    response = client.get(f"/api/posts/{post['id']}")

    assert response.status_code == 200
    body = response.json()
    assert body["advertiser_email"] == "ads@example.com"
    assert body["availability"] == {"accepts_reservations": False}


def test_details_when_limit_is_reached(client, db_session):
    advertiser, token = _advertiser(client)
    customer = _client_user(client)
    post = create_post(client, token, advertiser["id"], with_reservation="true",
                       reservation_limit=5, reservation_time=future()).json()["post"]
    _add_reservations(db_session, post["id"], customer["id"], 5)

    availability = client.get(f"/api/posts/{post['id']}").json()["availability"]

    assert availability == {
        "accepts_reservations": True,
        "current_reservations": 5,
        "available_slots": 0,
        "is_available": False,
        "is_expired": False,
    }


def test_details_without_limit_is_always_available(client, db_session):
    advertiser, token = _advertiser(client)
    customer = _client_user(client)
    post = create_post(client, token, advertiser["id"], with_reservation="true").json()["post"]
    _add_reservations(db_session, post["id"], customer["id"], 7)

    availability = client.get(f"/api/posts/{post['id']}").json()["availability"]

    assert availability["available_slots"] is None
    assert availability["is_available"] is True
    assert availability["is_expired"] is False


def test_details_for_missing_post_is_404(client):
    response = client.get("/api/posts/4242")

    assert response.status_code == 404
    assert response.json() == {"error": "Post not found"}


# Saved posts

def test_save_post_and_reject_duplicate(client, db_session):
    advertiser, token = _advertiser(client)
    customer = _client_user(client)
    post = create_post(client, token, advertiser["id"]).json()["post"]
    payload = {"client_id": customer["id"], "post_id": post["id"]}

    first = client.post("/api/posts/save", json=payload)
    second = client.post("/api/posts/save", json=payload)

    assert first.status_code == 201
    assert first.json()["saved_post"]["post_id"] == post["id"]
    assert second.status_code == 409
    assert second.json() == {"error": "Post already saved"}
    assert db_session.query(SavedPost).count() == 1


def test_save_missing_post_is_404(client):
    customer = _client_user(client)

    response = client.post("/api/posts/save", json={"client_id": customer["id"], "post_id": 4242})

    assert response.status_code == 404


def test_save_for_missing_client_is_404(client, db_session):
    advertiser, token = _advertiser(client)
    post = create_post(client, token, advertiser["id"]).json()["post"]

    response = client.post("/api/posts/save", json={"client_id": 4242, "post_id": post["id"]})

    assert response.status_code == 404
    assert response.json() == {"error": "Client not found"}
    assert db_session.query(SavedPost).count() == 0


def test_list_saved_posts_is_enriched_and_newest_first(client, db_session):
    boats = _category(db_session)
    advertiser, token = _advertiser(client)
    customer = _client_user(client)
    older = create_post(client, token, advertiser["id"], title="older", category_id=boats, price="10").json()["post"]
    newer = create_post(client, token, advertiser["id"], title="newer", post_type="reel").json()["post"]
    client.post("/api/posts/save", json={"client_id": customer["id"], "post_id": older["id"]})
    client.post("/api/posts/save", json={"client_id": customer["id"], "post_id": newer["id"]})

    response = client.get(f"/api/posts/saved/{customer['id']}?limit=1")

    assert response.status_code == 200
    body = response.json()
    assert len(body["saved_posts"]) == 1
    latest = body["saved_posts"][0]
    assert latest["title"] == "newer"
    assert latest["type"] == "reel"
    assert latest["advertiser_name"] == "Acme Ads"
    assert body["pagination"]["total_saved"] == 2
    assert body["pagination"]["total_pages"] == 2

    second_page = client.get(f"/api/posts/saved/{customer['id']}?limit=1&page=2").json()["saved_posts"][0]
    assert second_page["title"] == "older"
    assert second_page["category_name"] == "Boats"
    assert second_page["price"] == 10.0


def test_unsave_post(client):
    advertiser, token = _advertiser(client)
    customer = _client_user(client)
    post = create_post(client, token, advertiser["id"]).json()["post"]
    client.post("/api/posts/save", json={"client_id": customer["id"], "post_id": post["id"]})

    removed = client.delete(f"/api/posts/saved/{customer['id']}/{post['id']}")
    again = client.delete(f"/api/posts/saved/{customer['id']}/{post['id']}")

    assert removed.status_code == 200
    assert again.status_code == 404
    assert client.get(f"/api/posts/saved/{customer['id']}").json()["saved_posts"] == []


# Engagement

def test_engagement_aggregates_comments_saves_and_reservations(client, db_session):
    advertiser, token = _advertiser(client)
    customer = _client_user(client)
    post = create_post(client, token, advertiser["id"], with_reservation="true").json()["post"]
    client.post("/api/posts/save", json={"client_id": customer["id"], "post_id": post["id"]})
    db_session.add(Comment(post_id=post["id"], user_id=customer["id"], content="Looks great"))
    db_session.commit()
    _add_reservations(db_session, post["id"], customer["id"], 2)
    _add_reservations(db_session, post["id"], customer["id"], 1, status=STATUS_CANCELLED)

    response = client.get(f"/api/posts/{post['id']}/engagement")

    assert response.status_code == 200
    body = response.json()
    assert body["post_id"] == post["id"]
    assert body["comments_count"] == 1
    assert body["saves_count"] == 1
    assert body["reservations_count"] == 3
    assert body["active_reservations_count"] == 2


def test_engagement_for_missing_post_is_404(client):
    assert client.get("/api/posts/4242/engagement").status_code == 404


# Reservations

def test_register_advertiser_post_and_reserve_until_full(client):
    advertiser = register(client, name="Acme Ads", email="ads@example.com", kind="advertiser").json()
    advertiser_token = login(client, "ads@example.com", kind="advertiser").json()["token"]
    post = create_post(client, advertiser_token, advertiser["id"], with_reservation="true",
                       reservation_limit=1, reservation_time=future()).json()["post"]
    customer = _client_user(client)

    reserved = client.post(f"/api/posts/{post['id']}/reservations", json={"client_id": customer["id"]})
    availability = client.get(f"/api/posts/{post['id']}").json()["availability"]
    overbooked = client.post(f"/api/posts/{post['id']}/reservations", json={"client_id": customer["id"]})

    assert reserved.status_code == 201
    assert reserved.json()["reservation"]["status"] == "active"
    assert availability["available_slots"] == 0
    assert availability["is_available"] is False
    assert overbooked.status_code == 409


def test_reserve_post_without_reservations_is_400(client):
    advertiser, token = _advertiser(client)
    customer = _client_user(client)
    post = create_post(client, token, advertiser["id"]).json()["post"]

    response = client.post(f"/api/posts/{post['id']}/reservations", json={"client_id": customer["id"]})

    assert response.status_code == 400
    assert response.json() == {"error": "Post does not accept reservations"}


def test_reserve_missing_post_is_404(client):
    customer = _client_user(client)

    response = client.post("/api/posts/4242/reservations", json={"client_id": customer["id"]})

    assert response.status_code == 404


def test_reserve_for_missing_client_is_404(client, db_session):
    advertiser, token = _advertiser(client)
    post = create_post(client, token, advertiser["id"], with_reservation="true", reservation_limit=2).json()["post"]

    response = client.post(f"/api/posts/{post['id']}/reservations", json={"client_id": 4242})

    assert response.status_code == 404
    assert response.json() == {"error": "Client not found"}
    assert db_session.query(Reservation).count() == 0


def test_reserve_after_reservation_period_is_400(client, db_session):
    advertiser, _ = _advertiser(client)
    customer = _client_user(client)
    post = Post(advertiser_id=advertiser["id"], type="post", title="Last week's cruise", with_reservation=True,
                reservation_limit=3, reservation_time=datetime.now(timezone.utc) - timedelta(hours=1))
    db_session.add(post)
    db_session.commit()

    response = client.post(f"/api/posts/{post.id}/reservations", json={"client_id": customer["id"]})

    assert response.status_code == 400
    assert response.json() == {"error": "Reservation period has ended"}
    assert db_session.query(Reservation).count() == 0
