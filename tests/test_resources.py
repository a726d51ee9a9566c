from datetime import datetime

TOPPER = {
    "name": "Arjun Patel",
    "achievement": "AIR 15 in JEE Advanced",
    "exam": "JEE Advanced 2023",
    "year": 2023,
    "score": "324/360",
    "course": "JEE Main & Advanced",
}


def test_topper_photo_upload_and_required_message(client, admin_headers, media):
    missing = client.post("/api/toppers", json=TOPPER, headers=admin_headers)
    assert missing.status_code == 400
    assert missing.json()["errors"] == [{"field": "photo", "message": "Student photo is required"}]

    form = {k: str(v) for k, v in TOPPER.items()}
    res = client.post("/api/toppers", data=form, headers=admin_headers,
                      files={"photo": ("arjun.jpg", b"bytes", "image/jpeg")})

    assert res.status_code == 201
    assert res.json()["data"]["photo"] == "https://media.test/arjun.jpg"
    assert res.json()["data"]["year"] == 2023


def test_topper_year_cannot_be_in_the_future(client, admin_headers):
    payload = {**TOPPER, "photo": "https://media.test/a.jpg", "year": datetime.now().year + 2}

    res = client.post("/api/toppers", json=payload, headers=admin_headers)

    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "year"


def test_topper_filters(client, mongo_db):
    mongo_db.topper.insert_many([
        {"name": "A", "exam": "JEE Advanced", "year": 2023, "featured": True, "isActive": True},
        {"name": "B", "exam": "NEET (UG)", "year": 2024, "featured": False, "isActive": True},
        {"name": "C", "exam": "jee main", "year": 2024, "featured": True, "isActive": True},
        {"name": "D", "exam": "JEE Main", "year": 2024, "featured": True, "isActive": False},
    ])

    jee = client.get("/api/toppers?exam=jee").json()["data"]["toppers"]
    assert [t["name"] for t in jee] == ["C", "A"]

    neet = client.get("/api/toppers?exam=NEET%20(UG)").json()["data"]["toppers"]
    assert [t["name"] for t in neet] == ["B"]

    featured_2024 = client.get("/api/toppers?year=2024&featured=true").json()["data"]["toppers"]
    assert [t["name"] for t in featured_2024] == ["C"]

    inactive = client.get("/api/toppers?isActive=false").json()["data"]["toppers"]
    assert [t["name"] for t in inactive] == ["D"]


def test_achievement_create_and_sort(client, admin_headers):
    base = {
        "description": "Recognised regionally",
        "image": "https://media.test/award.jpg",
        "category": "Awards",
    }
    for title, priority, date in [("Low", 0, "2024-05-01"), ("High", 5, "2023-01-01"), ("Mid", 2, "2024-01-15")]:
        res = client.post("/api/achievements", json={**base, "title": title, "priority": priority, "date": date,
                                                     "relatedStudents": [{"name": "Riya", "class": "12"}]},
                          headers=admin_headers)
        assert res.status_code == 201

    data = client.get("/api/achievements").json()["data"]

    assert [a["title"] for a in data["achievements"]] == ["High", "Mid", "Low"]
    assert data["achievements"][0]["relatedStudents"] == [{"name": "Riya", "class": "12", "achievement": ""}]
    assert data["achievements"][0]["date"].startswith("2023-01-01")


def test_achievement_category_filter(client, mongo_db):
    mongo_db.achievement.insert_many([
        {"title": "A", "category": "Awards", "isActive": True, "priority": 0},
        {"title": "B", "category": "Certifications", "isActive": True, "priority": 0},
    ])

    res = client.get("/api/achievements?category=Awards")

    assert [a["title"] for a in res.json()["data"]["achievements"]] == ["A"]
    assert client.get("/api/achievements?category=Gossip").status_code == 400


def test_gallery_defaults_to_twelve_per_page_in_display_order(client, mongo_db):
    mongo_db.gallery.insert_many([
        {"title": f"Photo {i}", "order": 20 - i, "date": datetime(2024, 1, 1), "isActive": True}
        for i in range(15)
    ])

    data = client.get("/api/gallery").json()["data"]

    assert len(data["items"]) == 12
    assert data["pagination"] == {"current": 1, "pages": 2, "total": 15}
    assert data["items"][0]["title"] == "Photo 14"


def test_gallery_tags_and_delete(client, admin_headers, media, mongo_db):
    form = {"title": "Sports Day", "category": "Sports", "date": "2024-02-10", "tags": '["sports", "athletics"]'}
    created = client.post("/api/gallery", data=form, headers=admin_headers,
                          files={"image": ("day.jpg", b"bytes", "image/jpeg")}).json()

    assert created["message"] == "Gallery item created successfully"
    assert created["data"]["tags"] == ["sports", "athletics"]

    res = client.delete(f"/api/gallery/{created['data']['id']}", headers=admin_headers)

    assert res.json()["message"] == "Gallery item deleted successfully"
    assert media.deleted == ["https://media.test/day.jpg"]
    assert mongo_db.gallery.count_documents({}) == 0


def test_numeric_topper_score_is_stored_as_text(client, admin_headers, mongo_db):
    payload = {**TOPPER, "photo": "https://media.test/a.jpg", "score": 98}

    res = client.post("/api/toppers", json=payload, headers=admin_headers)

    assert res.status_code == 201
    assert mongo_db.topper.find_one()["score"] == "98"
