"""Models for tutor search and profiles."""

from typing import Literal, Optional

from pydantic import Field

from .common import WireModel

SortBy = Literal["rating", "price-low", "price-high", "popular", "newest"]


class Tutor(WireModel):
    """Tutor summary as returned by search and featured listings."""
    user_id: str
    email: str = ""
    first_name: str = ""
    middle_name: Optional[str] = None
    last_name: str = ""
    display_name: str = ""
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    tier: int = 0
    hourly_rate: Optional[float] = None
    languages: list[str] = Field(default_factory=list)
    specializations: list[str] = Field(default_factory=list)
    total_sessions: Optional[int] = None
    rating: Optional[float] = None
    total_reviews: Optional[int] = None
    is_available: Optional[bool] = None
    next_available_slot: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    is_verified: Optional[bool] = None
    joined_date: Optional[str] = None


class TutorProfile(Tutor):
    """Full tutor profile page."""
    education: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    experience_years: Optional[int] = None
    teaching_style: Optional[str] = None
    introduction: Optional[str] = None
    video_intro_url: Optional[str] = None
    school_attended: Optional[str] = None
    major: Optional[str] = None
    teaching_qualifications: Optional[str] = None
    completion_rate: Optional[float] = None
    response_time: Optional[str] = None
    repeat_students: Optional[int] = None


class TutorSearchParams(WireModel):
    """Filters for GET /tutor/search."""
    query: Optional[str] = None
    languages: Optional[list[str]] = None
    specializations: Optional[list[str]] = None
    min_rating: Optional[float] = None
    max_hourly_rate: Optional[float] = None
    min_hourly_rate: Optional[float] = None
    is_available: Optional[bool] = None
    sort_by: Optional[SortBy] = None
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1, le=100)

    def to_query(self) -> dict:
        """Query parameters; the free-text query is sent as `q`."""
        params = self.to_wire()
        if "query" in params:
            params["q"] = params.pop("query")
        for key, value in params.items():
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
        return params


class TutorSearchResponse(WireModel):
    tutors: list[Tutor] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 0
    has_more: bool = False


class AvailabilityCell(WireModel):
    """One cell of a tutor's weekly availability grid."""
    date: str
    time: str
    status: Literal["AVAIL", "TAKEN", "BOOKED"]
    student_id: Optional[str] = None
