import io

import pytest
from fastapi import UploadFile

from errors import ValidationFailed
from media import LocalMediaHost, discard, extract_public_id, store_upload


@pytest.mark.parametrize("url, public_id", [
    ("https://res.cloudinary.com/demo/image/upload/v1712345/coaching-cms/abc123.jpg", "coaching-cms/abc123"),
    ("https://res.cloudinary.com/demo/image/upload/coaching-cms/hero.png", "coaching-cms/hero"),
    ("https://res.cloudinary.com/demo/image/upload/v1/photo.webp?_a=x", "photo"),
    ("https://images.pexels.com/photos/1/pexels-photo-1.jpeg", None),
    ("", None),
])
def test_extract_public_id(url, public_id):
    assert extract_public_id(url) == public_id


def test_local_host_round_trip(tmp_path):
    host = LocalMediaHost(str(tmp_path))

    url = host.upload(io.BytesIO(b"image-bytes"), "My Photo!.JPG")

    assert url.startswith("/static/My_Photo_")
    assert url.endswith(".jpg")
    stored = tmp_path / url.rsplit("/", 1)[1]
    assert stored.read_bytes() == b"image-bytes"

    host.delete(url)
    assert not stored.exists()


def test_local_host_ignores_foreign_urls(tmp_path):
    host = LocalMediaHost(str(tmp_path))
    (tmp_path / "keep.jpg").write_bytes(b"x")

    host.delete("https://images.pexels.com/keep.jpg")

    assert (tmp_path / "keep.jpg").exists()


def test_store_upload_rejects_non_images(tmp_path):
    upload = UploadFile(file=io.BytesIO(b"#!/bin/sh"), filename="script.sh")

    with pytest.raises(ValidationFailed) as exc:
        store_upload(LocalMediaHost(str(tmp_path)), upload, "image")

    assert exc.value.errors[0]["field"] == "image"


def test_discard_swallows_failures():
    class Broken:
        calls = 0

        def delete(self, url):
            Broken.calls += 1
            raise ConnectionError("down")

    discard(Broken(), "https://media.test/a.jpg")
    discard(Broken(), None)

    assert Broken.calls == 1
