"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
JSON field names are camelCase; Python attributes are snake_case.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.domain.models import MemberRecord, StoredMember


class RegisterRequest(BaseModel):
    """Request model for member registration."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    full_name: str = Field(..., alias="fullName", min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    dob: date = Field(..., description="Date of birth (YYYY-MM-DD)")
    membership_type: str = Field(..., alias="membershipType", min_length=1)
    skills: str | None = None
    interests: list[str] = Field(default_factory=list)

    @field_validator("dob")
    @classmethod
    def dob_not_in_future(cls, value: date) -> date:
        if value > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return value

    @field_validator("interests", mode="before")
    @classmethod
    def split_interests(cls, value: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    def to_record(self) -> MemberRecord:
        return MemberRecord(
            full_name=self.full_name,
            email=str(self.email),
            phone=self.phone,
            address=self.address,
            date_of_birth=self.dob,
            membership_type=self.membership_type,
            skills=self.skills or None,
            interests=tuple(self.interests),
        )


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    member_id: str = Field(..., alias="memberId")


class MemberView(BaseModel):
    """Public representation of a stored member."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName")
    email: str
    phone: str
    address: str
    dob: date
    membership_type: str = Field(..., alias="membershipType")
    skills: str | None = None
    interests: list[str]
    member_id: str = Field(..., alias="memberId")
    registration_timestamp: datetime | None = Field(None, alias="registrationTimestamp")

    @classmethod
    def from_member(cls, member: StoredMember) -> "MemberView":
        return cls(
            full_name=member.full_name,
            email=member.email,
            phone=member.phone,
            address=member.address,
            dob=member.date_of_birth,
            membership_type=member.membership_type,
            skills=member.skills,
            interests=list(member.interests),
            member_id=member.member_id,
            registration_timestamp=member.registered_at,
        )


class MemberResponse(BaseModel):
    """Response model for member lookup."""

    success: bool = True
    member: MemberView


class ErrorResponse(BaseModel):
    """Standard error response model."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    message: str | None = None
    error: str | None = None
    member_id: str | None = Field(None, alias="memberId")

    def to_content(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
