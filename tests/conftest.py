import asyncio
import os
import tempfile

# Settings are read at import time, so the environment is prepared first
os.environ["RATE_LIMIT_MAX"] = "100000"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="cms-uploads-")
os.environ.pop("CLOUDINARY_URL", None)

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from auth import create_access_token, hash_password
from database import get_db
from main import app
from media import MediaHost, get_media_host


class FakeMediaHost(MediaHost):
    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail_delete = False
        self.uploaded_on_loop = []

    def upload(self, stream, filename):
        try:
            asyncio.get_running_loop()
            self.uploaded_on_loop.append(True)
        except RuntimeError:
            self.uploaded_on_loop.append(False)
        self.uploads.append(filename)
        return f"https://media.test/{filename}"

    def delete(self, url):
        self.deleted.append(url)
        if self.fail_delete:
            raise RuntimeError("media host unavailable")


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["cms_test"]


@pytest.fixture
def media():
    return FakeMediaHost()


@pytest.fixture
def client(mongo_db, media):
    app.dependency_overrides[get_db] = lambda: mongo_db
    app.dependency_overrides[get_media_host] = lambda: media
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_admin(db, email="admin@gmail.com", password="secret123", role="super-admin",
               permissions=None, is_active=True) -> ObjectId:
    return db.admin.insert_one({
        "name": "Test Admin",
        "email": email,
        "password": hash_password(password),
        "role": role,
        "permissions": permissions if permissions is not None else [],
        "isActive": is_active,
    }).inserted_id


def bearer(admin_id) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(admin_id))}"}


@pytest.fixture
def admin_headers(mongo_db):
    return bearer(make_admin(mongo_db))
