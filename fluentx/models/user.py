"""Models for student/tutor account endpoints and settings forms."""

import re
from typing import Optional

from pydantic import AliasChoices, Field

from ..errors import FormValidationError
from .common import WireModel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8


class TutorRegisterParams(WireModel):
    email: str
    password: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    suffix: Optional[str] = None
    birth_date: str = Field(..., description="YYYY-MM-DD")
    mobile_number: str


class StudentRegisterParams(WireModel):
    email: str
    password: str
    family_name: str
    given_name: str
    birth_date: str = Field(..., description="YYYY-MM-DD")
    mobile_number: str


class UserProfile(WireModel):
    """Current user as returned by the portal `me` and `login` endpoints."""
    user_id: str = Field(..., validation_alias=AliasChoices("userId", "user_id", "id"))
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    display_name: Optional[str] = None
    profile_picture: Optional[str] = None

    @property
    def full_name(self) -> str:
        if self.display_name:
            return self.display_name
        first = self.first_name or self.given_name or ""
        last = self.last_name or self.family_name or ""
        return f"{first} {last}".strip()


class PersonalInfoUpdate(WireModel):
    phone_number: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    region_name: Optional[str] = None
    province: Optional[str] = None
    province_name: Optional[str] = None
    city: Optional[str] = None
    city_name: Optional[str] = None
    zip_code: Optional[str] = None
    address_line: Optional[str] = None
    same_as_permanent: Optional[bool] = None
    school_attended: Optional[str] = None
    educational_attainment: Optional[str] = None
    major: Optional[str] = None
    teaching_experience: Optional[str] = None
    teaching_qualifications: Optional[list[str]] = None


class PasswordChange(WireModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""

    def check(self) -> None:
        """Raise FormValidationError with the settings-form message on the first failed rule."""
        if not self.current_password or not self.new_password or not self.confirm_password:
            raise FormValidationError("Please fill in all fields")
        if len(self.new_password) < MIN_PASSWORD_LENGTH:
            raise FormValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="new_password",
            )
        if self.new_password != self.confirm_password:
            raise FormValidationError("New passwords do not match", field="confirm_password")
        if self.current_password == self.new_password:
            raise FormValidationError(
                "New password must be different from current password",
                field="new_password",
            )


class EmailChange(WireModel):
    new_email: str = ""
    confirm_email: str = ""
    current_password: str = ""
    current_email: str = ""

    def check(self) -> None:
        """Raise FormValidationError with the settings-form message on the first failed rule."""
        if not self.new_email or not self.confirm_email or not self.current_password:
            raise FormValidationError("Please fill in all fields")
        if not EMAIL_PATTERN.match(self.new_email):
            raise FormValidationError("Please enter a valid email address", field="new_email")
        if self.new_email != self.confirm_email:
            raise FormValidationError("Email addresses do not match", field="confirm_email")
        if self.current_email and self.new_email.lower() == self.current_email.lower():
            raise FormValidationError(
                "New email must be different from current email",
                field="new_email",
            )
