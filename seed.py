"""Populate default admin credentials and sample site content.

Safe to run repeatedly: a record is only inserted when its natural key
(email, section, title, name + year) is not already present.

    python seed.py
"""
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List

from pymongo.database import Database
from pymongo.errors import PyMongoError

import database
from auth import hash_password
from database import ACHIEVEMENT, ADMIN, COURSE, GALLERY, HOME, TOPPER, create_document
from schemas import Achievement, Admin, Course, GalleryItem, Home, Permission, Topper

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@radianceacademy.com"
DEFAULT_ADMIN_PASSWORD = "admin123"

HOME_SECTIONS: List[Dict[str, Any]] = [
    {
        "section": "hero",
        "title": "Welcome to Masters Academy",
        "subtitle": "Illuminating Minds, Shaping Futures",
        "content": "At Masters Academy, we are committed to providing quality education that empowers "
                   "students to achieve their dreams and excel in their chosen fields.",
        "image": "https://images.pexels.com/photos/5212345/pexels-photo-5212345.jpeg",
        "buttonText": "Explore Courses",
        "buttonLink": "/courses",
        "order": 1,
    },
    {
        "section": "about",
        "title": "About Masters Academy",
        "content": "Masters Academy has been a beacon of educational excellence for over a decade. We "
                   "specialize in competitive exam preparation, academic support, and skill development "
                   "programs.",
        "image": "https://images.pexels.com/photos/5212700/pexels-photo-5212700.jpeg",
        "order": 2,
    },
    {
        "section": "vision",
        "title": "Our Vision",
        "content": "To be the leading educational institution that transforms lives through innovative "
                   "teaching methodologies, personalized attention, and comprehensive development programs.",
        "order": 3,
    },
    {
        "section": "mission",
        "title": "Our Mission",
        "content": "To provide world-class education that nurtures intellectual curiosity, develops critical "
                   "thinking skills, and prepares students to become responsible citizens and future leaders.",
        "order": 4,
    },
    {
        "section": "stats",
        "title": "Our Achievements",
        "content": "Numbers that speak for our excellence",
        "stats": [
            {"label": "Students Enrolled", "value": "5000+", "icon": "users"},
            {"label": "Success Rate", "value": "95%", "icon": "trophy"},
            {"label": "Expert Faculty", "value": "50+", "icon": "user-check"},
            {"label": "Years of Excellence", "value": "15+", "icon": "calendar"},
        ],
        "order": 5,
    },
]

COURSES: List[Dict[str, Any]] = [
    {
        "title": "JEE Main & Advanced Preparation",
        "description": "Comprehensive preparation program for JEE Main and Advanced with expert faculty, "
                       "regular mock tests, and personalized guidance.",
        "shortDescription": "Complete JEE preparation with expert guidance and proven results.",
        "image": "https://images.pexels.com/photos/5212329/pexels-photo-5212329.jpeg",
        "duration": "2 Years",
        "level": "Advanced",
        "category": "Competitive",
        "features": ["Expert Faculty", "Regular Mock Tests", "Study Material", "Doubt Clearing Sessions"],
        "price": 50000,
        "discountPrice": 45000,
        "instructor": {"name": "Dr. Rajesh Kumar", "qualification": "Ph.D. in Physics, IIT Delhi",
                       "experience": "15 years"},
    },
    {
        "title": "NEET Preparation Course",
        "description": "Specialized medical entrance exam preparation with focus on Biology, Chemistry, "
                       "and Physics.",
        "shortDescription": "Medical entrance exam preparation with high success rate.",
        "image": "https://images.pexels.com/photos/5212317/pexels-photo-5212317.jpeg",
        "duration": "1 Year",
        "level": "Advanced",
        "category": "Competitive",
        "features": ["Medical Expert Faculty", "NCERT Focus", "Regular Tests", "Previous Year Papers"],
        "price": 40000,
        "discountPrice": 35000,
        "instructor": {"name": "Dr. Priya Sharma", "qualification": "MBBS, MD", "experience": "12 years"},
    },
    {
        "title": "Class 10 CBSE Foundation",
        "description": "Strong foundation course for Class 10 students covering all CBSE subjects with "
                       "regular assessments.",
        "shortDescription": "Complete Class 10 CBSE preparation with strong foundation.",
        "image": "https://images.pexels.com/photos/5212324/pexels-photo-5212324.jpeg",
        "duration": "1 Year",
        "level": "Intermediate",
        "category": "Academic",
        "features": ["All Subjects Covered", "Regular Assessments", "Doubt Sessions", "Parent-Teacher Meetings"],
        "price": 25000,
        "discountPrice": 22000,
        "instructor": {"name": "Mrs. Sunita Verma", "qualification": "M.Sc., B.Ed.", "experience": "10 years"},
    },
]

TOPPERS: List[Dict[str, Any]] = [
    {
        "name": "Arjun Patel",
        "photo": "https://images.pexels.com/photos/2379004/pexels-photo-2379004.jpeg",
        "achievement": "AIR 15 in JEE Advanced",
        "exam": "JEE Advanced 2023",
        "year": 2023,
        "score": "324/360",
        "rank": "AIR 15",
        "course": "JEE Main & Advanced",
        "testimonial": "Masters Academy provided me with the perfect environment and guidance to achieve my "
                       "dream of getting into IIT.",
        "featured": True,
    },
    {
        "name": "Priya Singh",
        "photo": "https://images.pexels.com/photos/3763188/pexels-photo-3763188.jpeg",
        "achievement": "AIR 25 in NEET",
        "exam": "NEET 2023",
        "year": 2023,
        "score": "695/720",
        "rank": "AIR 25",
        "course": "NEET Preparation",
        "testimonial": "The faculty helped me understand complex concepts easily and build confidence.",
        "featured": True,
    },
    {
        "name": "Rohit Kumar",
        "photo": "https://images.pexels.com/photos/2182970/pexels-photo-2182970.jpeg",
        "achievement": "98.2% in Class 12 CBSE",
        "exam": "CBSE Class 12",
        "year": 2023,
        "score": "98.2%",
        "rank": "School Topper",
        "course": "Class 12 CBSE",
    },
]

ACHIEVEMENTS: List[Dict[str, Any]] = [
    {
        "title": "Best Coaching Institute Award 2023",
        "description": "Recognized as the Best Coaching Institute for JEE/NEET preparation in the region.",
        "image": "https://images.pexels.com/photos/5905709/pexels-photo-5905709.jpeg",
        "date": datetime(2023, 12, 15),
        "category": "Institute Recognition",
        "details": "Awarded by the State Education Board for outstanding performance in competitive exam "
                   "preparation.",
        "featured": True,
        "priority": 1,
    },
    {
        "title": "100% Pass Rate in Class 10",
        "description": "All our Class 10 students achieved passing grades with 85% scoring above 90%.",
        "image": "https://images.pexels.com/photos/5212345/pexels-photo-5212345.jpeg",
        "date": datetime(2023, 6, 1),
        "category": "Academic Excellence",
        "featured": True,
        "priority": 2,
    },
    {
        "title": "Top 50 Students in JEE Advanced",
        "description": "Our students secured 50 positions in top 1000 ranks of JEE Advanced 2023.",
        "image": "https://images.pexels.com/photos/5212329/pexels-photo-5212329.jpeg",
        "date": datetime(2023, 9, 15),
        "category": "Student Achievement",
        "featured": True,
        "priority": 3,
    },
]

GALLERY_ITEMS: List[Dict[str, Any]] = [
    {
        "title": "Annual Function 2023",
        "description": "Students performing at our annual cultural function",
        "image": "https://images.pexels.com/photos/1181406/pexels-photo-1181406.jpeg",
        "category": "Functions",
        "date": datetime(2023, 12, 20),
        "tags": ["cultural", "performance", "students"],
        "featured": True,
    },
    {
        "title": "Science Exhibition",
        "description": "Students showcasing their innovative science projects",
        "image": "https://images.pexels.com/photos/2280571/pexels-photo-2280571.jpeg",
        "category": "Academic",
        "date": datetime(2023, 11, 15),
        "tags": ["science", "exhibition", "innovation"],
    },
    {
        "title": "Sports Day Celebration",
        "description": "Annual sports day with various athletic competitions",
        "image": "https://images.pexels.com/photos/1263349/pexels-photo-1263349.jpeg",
        "category": "Sports",
        "date": datetime(2023, 10, 25),
        "tags": ["sports", "athletics", "competition"],
    },
    {
        "title": "Campus Library",
        "description": "Our well-equipped library with extensive collection of books",
        "image": "https://images.pexels.com/photos/159711/books-bookstore-book-reading-159711.jpeg",
        "category": "Campus Life",
        "date": datetime(2023, 9, 1),
        "tags": ["library", "books", "study"],
    },
]


def seed_admin(db: Database) -> bool:
    if db[ADMIN].find_one({"email": DEFAULT_ADMIN_EMAIL}):
        logger.info("Admin user already exists")
        return False
    admin = Admin(
        name="Admin",
        email=DEFAULT_ADMIN_EMAIL,
        password=hash_password(DEFAULT_ADMIN_PASSWORD),
        role="super-admin",
        permissions=[p.value for p in Permission],
    )
    create_document(ADMIN, admin, database=db)
    logger.info("Admin user created")
    return True


def _seed(db: Database, collection: str, model, records: List[Dict[str, Any]], key_fields) -> int:
    created = 0
    for record in records:
        key = {field: record[field] for field in key_fields}
        if db[collection].find_one(key):
            continue
        create_document(collection, model.model_validate(record), database=db)
        logger.info("Created %s: %s", collection, " / ".join(str(v) for v in key.values()))
        created += 1
    return created


def seed(db: Database) -> Dict[str, int]:
    return {
        ADMIN: int(seed_admin(db)),
        HOME: _seed(db, HOME, Home, HOME_SECTIONS, ["section"]),
        COURSE: _seed(db, COURSE, Course, COURSES, ["title"]),
        TOPPER: _seed(db, TOPPER, Topper, TOPPERS, ["name", "year"]),
        ACHIEVEMENT: _seed(db, ACHIEVEMENT, Achievement, ACHIEVEMENTS, ["title"]),
        GALLERY: _seed(db, GALLERY, GalleryItem, GALLERY_ITEMS, ["title"]),
    }


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        database.ping()
        database.ensure_indexes(database.db)
        counts = seed(database.db)
    except PyMongoError:
        logger.exception("MongoDB connection failed")
        return 1
    logger.info("Seeding completed: %s", counts)
    logger.info("Admin login: %s / %s", DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD)
    return 0


if __name__ == "__main__":
    sys.exit(main())
