# Shared helpers for the API tests.
# They register accounts, sign in and publish posts through the public routes
# so each test only spells out the behavior it checks.

import os
from datetime import datetime, timedelta, timezone
from app.core.media import MediaUploadError, UploadedMedia


class FakeUploader:
    """Stands in for Cloudinary and records what it was asked to do."""

    def __init__(self, fail=False):
        self.fail = fail
        self.uploaded_paths = []
        self.seen_contents = []
        self.destroyed = []

    def upload(self, path):
        if self.fail:
            raise MediaUploadError("cloudinary unavailable")
        self.uploaded_paths.append(path)
        with open(path, "rb") as fh:
            self.seen_contents.append(fh.read())
        n = len(self.uploaded_paths)
        return UploadedMedia(url=f"https://res.cloudinary.com/demo/posts/media_{n}.jpg", public_id=f"posts/media_{n}")

    def destroy(self, media):
        self.destroyed.append(media.public_id)


def register(client, name="Jane", email="jane@example.com", phone="555-0100",
             password="s3cret-pass", kind=None):
    path = "/api/users/register" if kind is None else f"/api/users/register/{kind}"
    return client.post(path, json={"name": name, "email": email, "phone": phone, "password": password})


def login(client, email, password="s3cret-pass", kind=None):
    path = "/api/users/login" if kind is None else f"/api/users/login/{kind}"
    return client.post(path, json={"email": email, "password": password})


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def signup_and_login(client, email, kind=None, name="Jane"):
    user = register(client, name=name, email=email, kind=kind).json()
    token = login(client, email).json()["token"]
    return user, token


def future(hours=24):
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


def past(hours=1):
    return (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()


def create_post(client, token, advertiser_id, title="Sunset cruise", post_type="post",
                filename="photo.jpg", content=b"fake-image-bytes", **fields):
    data = {"advertiser_id": str(advertiser_id), "type": post_type, "title": title}
    data.update({key: str(value) for key, value in fields.items()})
    files = {"file": (filename, content, "image/jpeg")} if filename else None
    headers = auth_header(token) if token else {}
    return client.post("/api/posts", data=data, files=files, headers=headers)


def file_exists(path):
    return os.path.exists(path)
