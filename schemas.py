"""
Database Schemas for the Coaching Institute CMS

Each Pydantic model below maps to a MongoDB collection (see the collection
names in database.py). Attributes are snake_case in Python and camelCase on
the wire and in the stored documents.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        validate_default=True,
        # Numeric form and JSON values are stored in their string form
        coerce_numbers_to_str=True,
    )


# -------------------- Closed value sets -------------------- #

class AdminRole(str, Enum):
    admin = "admin"
    super_admin = "super-admin"


class Permission(str, Enum):
    courses = "courses"
    toppers = "toppers"
    achievements = "achievements"
    gallery = "gallery"
    contacts = "contacts"
    home = "home"
    users = "users"


class CourseLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"


class CourseCategory(str, Enum):
    academic = "Academic"
    competitive = "Competitive"
    skill_development = "Skill Development"
    language = "Language"
    other = "Other"


class AchievementCategory(str, Enum):
    academic_excellence = "Academic Excellence"
    student_achievement = "Student Achievement"
    institute_recognition = "Institute Recognition"
    awards = "Awards"
    certifications = "Certifications"
    other = "Other"


class GalleryCategory(str, Enum):
    events = "Events"
    campus_life = "Campus Life"
    functions = "Functions"
    achievements = "Achievements"
    sports = "Sports"
    cultural = "Cultural"
    academic = "Academic"
    other = "Other"


class HomeSection(str, Enum):
    hero = "hero"
    about = "about"
    vision = "vision"
    mission = "mission"
    stats = "stats"
    testimonials = "testimonials"
    announcements = "announcements"


class Priority(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"


class ContactStatus(str, Enum):
    new = "New"
    in_progress = "In Progress"
    resolved = "Resolved"
    closed = "Closed"


# -------------------- Admin & auth -------------------- #

class Admin(Document):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., description="bcrypt hash")
    role: AdminRole = AdminRole.admin
    permissions: List[Permission] = Field(default_factory=list)
    is_active: bool = True
    last_login: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class LoginPayload(Document):
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class ChangePasswordPayload(Document):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


# -------------------- Site content -------------------- #

class Instructor(Document):
    name: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[str] = None


class Course(Document):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    short_description: str = Field(..., min_length=1, max_length=200)
    image: Optional[str] = None
    duration: str = Field(..., min_length=1)
    level: CourseLevel
    category: CourseCategory
    features: List[str] = Field(default_factory=list)
    syllabus: List[str] = Field(default_factory=list)
    price: float = Field(..., ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    is_active: bool = True
    enrollment_count: int = Field(0, ge=0)
    rating: float = Field(0, ge=0, le=5)
    instructor: Optional[Instructor] = None


class Topper(Document):
    name: str = Field(..., min_length=1, max_length=50)
    photo: Optional[str] = None
    achievement: str = Field(..., min_length=1, max_length=200)
    exam: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=2000)
    score: str = Field(..., min_length=1, max_length=50)
    rank: Optional[str] = Field(None, max_length=50)
    course: str = Field(..., min_length=1, max_length=100)
    testimonial: Optional[str] = Field(None, max_length=500)
    is_active: bool = True
    featured: bool = False

    @field_validator("year")
    @classmethod
    def _not_future(cls, v: int) -> int:
        # Bound moves with the calendar, so it is checked per write
        if v > datetime.now().year + 1:
            raise ValueError("Year cannot be in the future")
        return v


class RelatedStudent(Document):
    name: Optional[str] = None
    class_: str = Field("", alias="class")
    achievement: str = ""


class Achievement(Document):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    image: Optional[str] = None
    date: datetime
    category: AchievementCategory
    details: Optional[str] = Field(None, max_length=1000)
    related_students: List[RelatedStudent] = Field(default_factory=list)
    is_active: bool = True
    featured: bool = False
    priority: int = 0


class GalleryItem(Document):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=300)
    image: Optional[str] = None
    category: GalleryCategory
    date: datetime
    tags: List[str] = Field(default_factory=list)
    is_active: bool = True
    featured: bool = False
    order: int = 0


class Stat(Document):
    label: Optional[str] = None
    value: Optional[str] = None
    icon: Optional[str] = None


class Testimonial(Document):
    name: Optional[str] = None
    designation: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    rating: int = Field(5, ge=1, le=5)


class Announcement(Document):
    title: Optional[str] = None
    content: Optional[str] = None
    date: Optional[datetime] = None
    priority: Priority = Priority.medium
    is_active: bool = True


class Home(Document):
    section: HomeSection
    title: str = Field(..., min_length=1)
    subtitle: Optional[str] = None
    content: str = Field(..., min_length=1)
    image: Optional[str] = None
    button_text: Optional[str] = None
    button_link: Optional[str] = None
    stats: List[Stat] = Field(default_factory=list)
    testimonials: List[Testimonial] = Field(default_factory=list)
    announcements: List[Announcement] = Field(default_factory=list)
    is_active: bool = True
    order: int = 0


# -------------------- Enquiries -------------------- #

class Contact(Document):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: str = Field(..., pattern=r"^[0-9]{10}$")
    subject: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=1000)
    course: Optional[str] = None
    status: ContactStatus = ContactStatus.new
    priority: Priority = Priority.medium
    admin_notes: Optional[str] = Field(None, max_length=500)
    is_read: bool = False

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class ContactUpdate(Document):
    """Admin-side edit of an enquiry; only the supplied fields are written."""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    subject: Optional[str] = Field(None, min_length=1, max_length=100)
    message: Optional[str] = Field(None, min_length=1, max_length=1000)
    course: Optional[str] = None
    status: Optional[ContactStatus] = None
    priority: Optional[Priority] = None
    admin_notes: Optional[str] = Field(None, max_length=500)
    is_read: Optional[bool] = None
