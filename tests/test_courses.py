import json
import math
from datetime import datetime, timedelta

from bson import ObjectId

COURSE = {
    "title": "Class 10 Foundation",
    "description": "All CBSE subjects with weekly assessments",
    "shortDescription": "Board exam foundation",
    "image": "https://media.test/foundation.jpg",
    "duration": "1 Year",
    "level": "Intermediate",
    "category": "Academic",
    "price": 25000,
}


def _form(course: dict) -> dict:
    return {k: str(v) for k, v in course.items() if k != "image"}


def _insert_courses(db, rows):
    base = datetime(2024, 1, 1)
    for i, (level, active) in enumerate(rows):
        db.course.insert_one({
            "title": f"Course {i}",
            "level": level,
            "isActive": active,
            "image": f"https://media.test/{i}.jpg",
            "createdAt": base + timedelta(days=i),
        })


def test_create_course(client, admin_headers, mongo_db):
    res = client.post("/api/courses", json=COURSE, headers=admin_headers)

    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "Course created successfully"
    assert body["data"]["title"] == COURSE["title"]
    assert body["data"]["isActive"] is True
    assert body["data"]["id"]
    assert mongo_db.course.count_documents({}) == 1


def test_create_course_requires_image(client, admin_headers):
    payload = dict(COURSE)
    del payload["image"]

    res = client.post("/api/courses", json=payload, headers=admin_headers)

    assert res.status_code == 400
    assert res.json()["errors"] == [{"field": "image", "message": "Course image is required"}]


def test_create_course_rejects_unknown_level(client, admin_headers):
    res = client.post("/api/courses", json={**COURSE, "level": "Expert"}, headers=admin_headers)

    assert res.status_code == 400
    assert res.json()["message"] == "Validation failed"
    assert [err["field"] for err in res.json()["errors"]] == ["level"]


def test_create_course_from_multipart(client, admin_headers, media, mongo_db):
    form = _form(COURSE)
    form["features"] = json.dumps(["Mock tests", "Doubt sessions"])
    form["instructor"] = json.dumps({"name": "Dr. Rao"})

    res = client.post("/api/courses", data=form, headers=admin_headers,
                      files={"image": ("cover.jpg", b"jpeg-bytes", "image/jpeg")})

    assert res.status_code == 201
    data = res.json()["data"]
    assert data["image"] == "https://media.test/cover.jpg"
    assert data["features"] == ["Mock tests", "Doubt sessions"]
    assert data["instructor"]["name"] == "Dr. Rao"
    assert data["price"] == 25000
    assert media.uploads == ["cover.jpg"]


def test_malformed_structured_field_falls_back_to_empty(client, admin_headers):
    form = _form(COURSE)
    form["features"] = "[not json"
    form["instructor"] = "{broken"

    res = client.post("/api/courses", data=form, headers=admin_headers,
                      files={"image": ("cover.png", b"png-bytes", "image/png")})

    assert res.status_code == 201
    assert res.json()["data"]["features"] == []


def test_upload_must_be_an_image(client, admin_headers, media):
    res = client.post("/api/courses", data=_form(COURSE), headers=admin_headers,
                      files={"image": ("notes.pdf", b"%PDF", "application/pdf")})

    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "image"
    assert media.uploads == []


def test_list_filters_by_level_newest_first(client, mongo_db):
    _insert_courses(mongo_db, [
        ("Beginner", True),
        ("Advanced", True),
        ("Beginner", False),
        ("Beginner", True),
    ])

    res = client.get("/api/courses?level=Beginner&page=1&limit=10")

    assert res.status_code == 200
    data = res.json()["data"]
    assert [c["title"] for c in data["courses"]] == ["Course 3", "Course 0"]
    assert all(c["isActive"] and c["level"] == "Beginner" for c in data["courses"])
    assert data["pagination"] == {"current": 1, "pages": 1, "total": 2}


def test_list_pagination_arithmetic(client, mongo_db):
    _insert_courses(mongo_db, [("Beginner", True)] * 23)

    for page, limit in [(1, 10), (3, 10), (2, 7), (1, 50)]:
        data = client.get(f"/api/courses?page={page}&limit={limit}").json()["data"]
        total = data["pagination"]["total"]
        assert total == 23
        assert data["pagination"]["pages"] == math.ceil(total / limit)
        assert len(data["courses"]) <= limit

    assert len(client.get("/api/courses?page=3&limit=10").json()["data"]["courses"]) == 3


def test_list_rejects_bad_paging(client):
    res = client.get("/api/courses?page=0")

    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "page"


def test_get_course_not_found(client):
    for course_id in [str(ObjectId()), "not-an-object-id"]:
        res = client.get(f"/api/courses/{course_id}")
        assert res.status_code == 404
        assert res.json() == {"success": False, "message": "Course not found"}


def test_update_replaces_image_and_cleans_up_old_one(client, admin_headers, media, mongo_db):
    created = client.post("/api/courses", json=COURSE, headers=admin_headers).json()["data"]

    res = client.put(f"/api/courses/{created['id']}", data={**_form(COURSE), "title": "Renamed"},
                     headers=admin_headers, files={"image": ("new.jpg", b"bytes", "image/jpeg")})

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["title"] == "Renamed"
    assert data["image"] == "https://media.test/new.jpg"
    assert media.deleted == ["https://media.test/foundation.jpg"]


def test_update_keeps_unsupplied_fields(client, admin_headers, mongo_db):
    created = client.post("/api/courses", json={**COURSE, "isActive": False, "rating": 4.5},
                          headers=admin_headers).json()["data"]

    res = client.put(f"/api/courses/{created['id']}", json={**COURSE, "price": 20000}, headers=admin_headers)

    stored = mongo_db.course.find_one({"_id": ObjectId(created["id"])})
    assert res.status_code == 200
    assert stored["price"] == 20000
    assert stored["isActive"] is False
    assert stored["rating"] == 4.5


def test_update_survives_failed_image_cleanup(client, admin_headers, media):
    created = client.post("/api/courses", json=COURSE, headers=admin_headers).json()["data"]
    media.fail_delete = True

    res = client.put(f"/api/courses/{created['id']}", data=_form(COURSE), headers=admin_headers,
                     files={"image": ("new.jpg", b"bytes", "image/jpeg")})

    assert res.status_code == 200
    assert res.json()["data"]["image"] == "https://media.test/new.jpg"


def test_update_missing_course(client, admin_headers):
    res = client.put(f"/api/courses/{ObjectId()}", json=COURSE, headers=admin_headers)

    assert res.status_code == 404


def test_delete_removes_image_once(client, admin_headers, media, mongo_db):
    created = client.post("/api/courses", json=COURSE, headers=admin_headers).json()["data"]

    res = client.delete(f"/api/courses/{created['id']}", headers=admin_headers)

    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Course deleted successfully"}
    assert media.deleted == ["https://media.test/foundation.jpg"]
    assert mongo_db.course.count_documents({}) == 0


def test_delete_proceeds_when_media_host_fails(client, admin_headers, media, mongo_db):
    created = client.post("/api/courses", json=COURSE, headers=admin_headers).json()["data"]
    media.fail_delete = True

    res = client.delete(f"/api/courses/{created['id']}", headers=admin_headers)

    assert res.status_code == 200
    assert len(media.deleted) == 1
    assert mongo_db.course.count_documents({}) == 0


def test_writes_require_token(client, mongo_db):
    res = client.post("/api/courses", json=COURSE)

    assert res.status_code == 401
    assert mongo_db.course.count_documents({}) == 0


def test_upload_runs_off_the_event_loop(client, admin_headers, media):
    res = client.post("/api/courses", data=_form(COURSE), headers=admin_headers,
                      files={"image": ("foundation.jpg", b"bytes", "image/jpeg")})

    assert res.status_code == 201
    assert media.uploaded_on_loop == [False]
