"""Profile document types and the request inputs that build them."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SOCIAL_PLATFORMS: Tuple[str, ...] = ("youtube", "twitter", "facebook", "linkedin", "instagram")
PROFILE_SCALAR_FIELDS: Tuple[str, ...] = (
    "company",
    "website",
    "location",
    "bio",
    "status",
    "githubusername",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def parse_skills(raw: Union[str, List[str]]) -> List[str]:
    """Split a comma-delimited skills string into trimmed, non-empty entries."""
    pieces = raw.split(",") if isinstance(raw, str) else list(raw)
    return [piece.strip() for piece in pieces if isinstance(piece, str) and piece.strip()]


class SubEntry(BaseModel):
    """Fields shared by experience and education entries."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    from_date: date = Field(alias="from")
    to_date: Optional[date] = Field(default=None, alias="to")
    current: bool = False
    description: Optional[str] = None


class Experience(SubEntry):
    title: str
    company: str
    location: Optional[str] = None


class Education(SubEntry):
    school: str
    degree: str
    fieldofstudy: str


def experience_key(entry: Experience) -> Tuple[str, str]:
    return (entry.title, entry.company)


def education_key(entry: Education) -> Tuple[str, str, str]:
    return (entry.school, entry.degree, entry.fieldofstudy)


class ProfileOwner(BaseModel):
    id: str
    name: str
    avatar: Optional[str] = None


class Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner: ProfileOwner
    company: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    status: str
    githubusername: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    social: Dict[str, str] = Field(default_factory=dict)
    experience: List[Experience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    date: datetime = Field(default_factory=_now)
    version: int = 1


class ProfileFields(BaseModel):
    """Body of the create-or-update call.

    Blank strings count as "not supplied" so they never overwrite stored
    values. ``status`` and ``skills`` are required.
    """

    status: str = Field(..., min_length=1)
    skills: Union[str, List[str]]
    company: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    githubusername: Optional[str] = None
    youtube: Optional[str] = None
    twitter: Optional[str] = None
    facebook: Optional[str] = None
    linkedin: Optional[str] = None
    instagram: Optional[str] = None

    @field_validator(
        "company",
        "website",
        "location",
        "bio",
        "githubusername",
        *SOCIAL_PLATFORMS,
        mode="before",
    )
    @classmethod
    def _drop_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("status", mode="before")
    @classmethod
    def _strip_status(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("skills")
    @classmethod
    def _require_skills(cls, value: Union[str, List[str]]) -> Union[str, List[str]]:
        if not parse_skills(value):
            raise ValueError("Skills is required")
        return value

    def scalar_updates(self) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}
        for name in PROFILE_SCALAR_FIELDS:
            value = getattr(self, name)
            if value is not None:
                updates[name] = value
        updates["skills"] = parse_skills(self.skills)
        return updates

    def social_updates(self) -> Dict[str, str]:
        return {
            platform: getattr(self, platform)
            for platform in SOCIAL_PLATFORMS
            if getattr(self, platform) is not None
        }


class _SubEntryFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_date: date = Field(alias="from")
    to_date: Optional[date] = Field(default=None, alias="to")
    current: bool = False
    description: Optional[str] = None

    @field_validator("to_date", "description", mode="before")
    @classmethod
    def _drop_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ExperienceFields(_SubEntryFields):
    title: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    location: Optional[str] = None

    @field_validator("location", mode="before")
    @classmethod
    def _drop_blank_location(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_entry(self) -> Experience:
        return Experience.model_validate(self.model_dump())


class EducationFields(_SubEntryFields):
    school: str = Field(..., min_length=1)
    degree: str = Field(..., min_length=1)
    fieldofstudy: str = Field(..., min_length=1)

    def to_entry(self) -> Education:
        return Education.model_validate(self.model_dump())


__all__ = [
    "Education",
    "EducationFields",
    "Experience",
    "ExperienceFields",
    "Profile",
    "ProfileFields",
    "ProfileOwner",
    "SOCIAL_PLATFORMS",
    "SubEntry",
    "education_key",
    "experience_key",
    "parse_skills",
]
