import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from starlette.concurrency import run_in_threadpool

from auth import AdminContext, require_permission
from controllers import ContactController, HomeController, ResourceController, read_payload
from database import ACHIEVEMENT, COURSE, GALLERY, HOME, TOPPER, get_db
from media import MediaHost, get_media_host
from schemas import (
    Achievement, AchievementCategory, Contact, ContactStatus, ContactUpdate, Course,
    CourseCategory, CourseLevel, GalleryCategory, GalleryItem, Home, HomeSection,
    Priority, Topper,
)

MAX_LIMIT = 100

courses = ResourceController(
    COURSE, Course, "Course", "courses",
    sort=[("createdAt", DESCENDING)],
    structured_fields={"features": list, "syllabus": list, "instructor": dict},
)
toppers = ResourceController(
    TOPPER, Topper, "Topper", "toppers",
    sort=[("year", DESCENDING), ("featured", DESCENDING), ("createdAt", DESCENDING)],
    image_field="photo", image_message="Student photo is required",
)
achievements = ResourceController(
    ACHIEVEMENT, Achievement, "Achievement", "achievements",
    sort=[("priority", DESCENDING), ("date", DESCENDING), ("featured", DESCENDING)],
    structured_fields={"relatedStudents": list},
)
gallery = ResourceController(
    GALLERY, GalleryItem, "Gallery item", "items",
    sort=[("order", ASCENDING), ("date", DESCENDING), ("featured", DESCENDING)],
    structured_fields={"tags": list}, plural_label="gallery items",
)
home = HomeController(
    HOME, Home, "Home section", "sections",
    sort=[("order", ASCENDING), ("createdAt", ASCENDING)],
    image_required=False, plural_label="home sections",
    structured_fields={"stats": list, "testimonials": list, "announcements": list},
)
contacts = ContactController(Contact, ContactUpdate)


def _active_query(is_active: bool, featured: Optional[bool] = None, **filters: Any) -> Dict[str, Any]:
    # Only parameters present on the query string constrain the result
    query: Dict[str, Any] = {"isActive": is_active}
    if featured is not None:
        query["featured"] = featured
    for field, value in filters.items():
        if value is not None:
            query[field] = value.value if hasattr(value, "value") else value
    return query


# -------------------- Courses -------------------- #

course_router = APIRouter(prefix="/api/courses", tags=["courses"])


@course_router.get("")
def list_courses(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=MAX_LIMIT),
                 category: Optional[CourseCategory] = None, level: Optional[CourseLevel] = None,
                 search: Optional[str] = None, is_active: bool = Query(True, alias="isActive"),
                 database: Database = Depends(get_db)):
    query = _active_query(is_active, category=category, level=level)
    if search:
        query["$text"] = {"$search": search}
    return courses.list(database, query, page, limit)


@course_router.get("/{course_id}")
def get_course(course_id: str, database: Database = Depends(get_db)):
    return courses.get(database, course_id)


@course_router.post("", status_code=201)
async def create_course(request: Request, admin: AdminContext = Depends(require_permission("courses")),
                        database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "image")
    return await run_in_threadpool(courses.create, database, media, data, upload, actor=admin)


@course_router.put("/{course_id}")
async def update_course(course_id: str, request: Request,
                        admin: AdminContext = Depends(require_permission("courses")),
                        database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "image")
    return await run_in_threadpool(courses.update, database, media, course_id, data, upload, actor=admin)


@course_router.delete("/{course_id}")
def delete_course(course_id: str, admin: AdminContext = Depends(require_permission("courses")),
                  database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    return courses.delete(database, media, course_id, actor=admin)


# -------------------- Toppers -------------------- #

topper_router = APIRouter(prefix="/api/toppers", tags=["toppers"])


@topper_router.get("")
def list_toppers(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=MAX_LIMIT),
                 year: Optional[int] = None, exam: Optional[str] = None, featured: Optional[bool] = None,
                 is_active: bool = Query(True, alias="isActive"), database: Database = Depends(get_db)):
    query = _active_query(is_active, featured, year=year)
    if exam:
        query["exam"] = {"$regex": re.escape(exam), "$options": "i"}
    return toppers.list(database, query, page, limit)


@topper_router.get("/{topper_id}")
def get_topper(topper_id: str, database: Database = Depends(get_db)):
    return toppers.get(database, topper_id)


@topper_router.post("", status_code=201)
async def create_topper(request: Request, admin: AdminContext = Depends(require_permission("toppers")),
                        database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "photo")
    return await run_in_threadpool(toppers.create, database, media, data, upload, actor=admin)


@topper_router.put("/{topper_id}")
async def update_topper(topper_id: str, request: Request,
                        admin: AdminContext = Depends(require_permission("toppers")),
                        database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "photo")
    return await run_in_threadpool(toppers.update, database, media, topper_id, data, upload, actor=admin)


@topper_router.delete("/{topper_id}")
def delete_topper(topper_id: str, admin: AdminContext = Depends(require_permission("toppers")),
                  database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    return toppers.delete(database, media, topper_id, actor=admin)


# -------------------- Achievements -------------------- #

achievement_router = APIRouter(prefix="/api/achievements", tags=["achievements"])


@achievement_router.get("")
def list_achievements(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=MAX_LIMIT),
                      category: Optional[AchievementCategory] = None, featured: Optional[bool] = None,
                      is_active: bool = Query(True, alias="isActive"), database: Database = Depends(get_db)):
    return achievements.list(database, _active_query(is_active, featured, category=category), page, limit)


@achievement_router.get("/{achievement_id}")
def get_achievement(achievement_id: str, database: Database = Depends(get_db)):
    return achievements.get(database, achievement_id)


@achievement_router.post("", status_code=201)
async def create_achievement(request: Request, admin: AdminContext = Depends(require_permission("achievements")),
                             database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "image")
    return await run_in_threadpool(achievements.create, database, media, data, upload, actor=admin)


@achievement_router.put("/{achievement_id}")
async def update_achievement(achievement_id: str, request: Request,
                             admin: AdminContext = Depends(require_permission("achievements")),
                             database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "image")
    return await run_in_threadpool(achievements.update, database, media, achievement_id, data, upload, actor=admin)


@achievement_router.delete("/{achievement_id}")
def delete_achievement(achievement_id: str, admin: AdminContext = Depends(require_permission("achievements")),
                       database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    return achievements.delete(database, media, achievement_id, actor=admin)


# -------------------- Gallery -------------------- #

gallery_router = APIRouter(prefix="/api/gallery", tags=["gallery"])


@gallery_router.get("")
def list_gallery_items(page: int = Query(1, ge=1), limit: int = Query(12, ge=1, le=MAX_LIMIT),
                       category: Optional[GalleryCategory] = None, featured: Optional[bool] = None,
                       is_active: bool = Query(True, alias="isActive"), database: Database = Depends(get_db)):
    return gallery.list(database, _active_query(is_active, featured, category=category), page, limit)


@gallery_router.get("/{item_id}")
def get_gallery_item(item_id: str, database: Database = Depends(get_db)):
    return gallery.get(database, item_id)


@gallery_router.post("", status_code=201)
async def create_gallery_item(request: Request, admin: AdminContext = Depends(require_permission("gallery")),
                              database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "image")
    return await run_in_threadpool(gallery.create, database, media, data, upload, actor=admin)


@gallery_router.put("/{item_id}")
async def update_gallery_item(item_id: str, request: Request,
                              admin: AdminContext = Depends(require_permission("gallery")),
                              database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "image")
    return await run_in_threadpool(gallery.update, database, media, item_id, data, upload, actor=admin)


@gallery_router.delete("/{item_id}")
def delete_gallery_item(item_id: str, admin: AdminContext = Depends(require_permission("gallery")),
                        database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    return gallery.delete(database, media, item_id, actor=admin)


# -------------------- Home sections -------------------- #

home_router = APIRouter(prefix="/api/home", tags=["home"])


@home_router.get("")
def list_home_sections(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=MAX_LIMIT),
                       section: Optional[HomeSection] = None, is_active: bool = Query(True, alias="isActive"),
                       database: Database = Depends(get_db)):
    return home.list(database, _active_query(is_active, section=section), page, limit)


@home_router.get("/{section}")
def get_home_section(section: str, database: Database = Depends(get_db)):
    return home.get(database, section)


@home_router.post("", status_code=201)
async def create_home_section(request: Request, response: Response,
                              admin: AdminContext = Depends(require_permission("home")),
                              database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "image")
    created, body = await run_in_threadpool(home.upsert, database, media, data, upload, actor=admin)
    if not created:
        response.status_code = 200
    return body


@home_router.put("/{section}")
async def update_home_section(section: str, request: Request,
                              admin: AdminContext = Depends(require_permission("home")),
                              database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    data, upload = await read_payload(request, "image")
    return await run_in_threadpool(home.update, database, media, section, data, upload, actor=admin)


@home_router.delete("/{section}")
def delete_home_section(section: str, admin: AdminContext = Depends(require_permission("home")),
                        database: Database = Depends(get_db), media: MediaHost = Depends(get_media_host)):
    return home.delete(database, media, section, actor=admin)


# -------------------- Contact enquiries -------------------- #

contact_router = APIRouter(prefix="/api/contact", tags=["contact"])


@contact_router.post("", status_code=201)
async def create_contact(request: Request, database: Database = Depends(get_db)):
    data, _ = await read_payload(request)
    return await run_in_threadpool(contacts.create, database, None, data)


@contact_router.get("")
def list_contacts(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=MAX_LIMIT),
                  status: Optional[ContactStatus] = None, priority: Optional[Priority] = None,
                  is_read: Optional[bool] = Query(None, alias="isRead"),
                  admin: AdminContext = Depends(require_permission("contacts")),
                  database: Database = Depends(get_db)):
    query: Dict[str, Any] = {}
    if status is not None:
        query["status"] = status.value
    if priority is not None:
        query["priority"] = priority.value
    if is_read is not None:
        query["isRead"] = is_read
    return contacts.list(database, query, page, limit)


@contact_router.get("/stats")
def contact_stats(admin: AdminContext = Depends(require_permission("contacts")),
                  database: Database = Depends(get_db)):
    return contacts.stats(database)


@contact_router.get("/{contact_id}")
def get_contact(contact_id: str, admin: AdminContext = Depends(require_permission("contacts")),
                database: Database = Depends(get_db)):
    return contacts.get(database, contact_id)


@contact_router.put("/{contact_id}")
async def update_contact(contact_id: str, request: Request,
                         admin: AdminContext = Depends(require_permission("contacts")),
                         database: Database = Depends(get_db)):
    data, _ = await read_payload(request)
    return await run_in_threadpool(contacts.update, database, None, contact_id, data, actor=admin)


@contact_router.delete("/{contact_id}")
def delete_contact(contact_id: str, admin: AdminContext = Depends(require_permission("contacts")),
                   database: Database = Depends(get_db)):
    return contacts.delete(database, None, contact_id, actor=admin)


routers = [course_router, topper_router, achievement_router, gallery_router, home_router, contact_router]
