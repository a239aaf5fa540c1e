"""Candidate source profile and staged projection schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class ContactChannels(BaseModel):
    """Direct contact channels for a candidate."""

    email: str | None = None
    phone: str | None = None
    linkedin: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class Address(BaseModel):
    """Postal address."""

    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    postcode: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class EducationEntry(BaseModel):
    """Structured education history entry."""

    institution: str = ""
    qualification: str | None = None
    subject: str | None = None
    grade: str | None = None
    start: str | None = None
    end: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class SalaryRange(BaseModel):
    """Desired annual salary range in GBP."""

    min_gbp: int | None = None
    max_gbp: int | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class WorkPreferences(BaseModel):
    """Working arrangement preferences."""

    work_type: str | None = None
    salary_range: SalaryRange | None = None
    industries: tuple[str, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)


class PortfolioItem(BaseModel):
    """Work sample or project."""

    title: str
    description: str = ""
    url: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class VideoMedia(BaseModel):
    """Raw video profile asset. Never exposed directly."""

    url: str
    duration_seconds: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)


class CandidateRecord(BaseModel):
    """Full candidate profile as owned by the candidate."""

    candidate_id: str
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    city: str | None = None
    region: str | None = None
    postcode: str | None = None
    summary: str = ""
    industry_interests: tuple[str, ...] = ()
    skills: tuple[str, ...] = ()
    education: tuple[EducationEntry, ...] = ()
    certifications: tuple[str, ...] = ()
    work_preferences: WorkPreferences = Field(default_factory=WorkPreferences)
    career_goals: str = ""
    portfolio: tuple[PortfolioItem, ...] = ()
    achievements: tuple[str, ...] = ()
    video: VideoMedia | None = None
    contact: ContactChannels = Field(default_factory=ContactChannels)
    address: Address | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


PROFILE_SECTIONS = ("basic", "skills", "portfolio", "contact")


class WatermarkedMedia(BaseModel):
    """Employer-specific, time-limited pointer to a video asset."""

    url: str
    max_duration_seconds: int
    watermarked: bool = True

    model_config = ConfigDict(extra="forbid", frozen=True)


class BasicInfo(BaseModel):
    first_name: str
    last_initial: str | None = None
    age_band: str | None = None
    city: str
    region: str
    summary: str
    industry_interests: tuple[str, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)


class WorkPreferencesView(BaseModel):
    work_type: str
    salary_range: str
    industries: tuple[str, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)


class SkillsInfo(BaseModel):
    skills: tuple[str, ...] = ()
    education: tuple[EducationEntry, ...] = ()
    certifications: tuple[str, ...] = ()
    work_preferences: WorkPreferencesView
    career_goals: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


class PortfolioInfo(BaseModel):
    portfolio: tuple[PortfolioItem, ...] = ()
    achievements: tuple[str, ...] = ()
    video: WatermarkedMedia | None = None
    references: str = "References available upon request"

    model_config = ConfigDict(extra="forbid", frozen=True)


class ContactInfo(BaseModel):
    email: str | None = None
    phone: str | None = None
    linkedin: str | None = None
    full_address: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class AccessMetadata(BaseModel):
    """Grant context attached to a rendered profile."""

    level: int
    employer_id: str | None = None
    granted_at: datetime | None = None
    restrictions: tuple[str, ...] = ()
    watermarked: bool = True

    model_config = ConfigDict(extra="forbid", frozen=True)


class StagedProfile(BaseModel):
    """Subset of a candidate record visible at a given access level."""

    candidate_id: str
    level: int
    basic: BasicInfo
    skills: SkillsInfo | None = None
    portfolio: PortfolioInfo | None = None
    contact: ContactInfo | None = None
    access: AccessMetadata

    model_config = ConfigDict(extra="forbid", frozen=True)

    def visible_fields(self) -> set[str]:
        """Return dotted names of every disclosed field."""
        fields: set[str] = set()
        for section_name in PROFILE_SECTIONS:
            section = getattr(self, section_name)
            if section is None:
                continue
            for name, value in section:
                if value is None or value == () or value == "":
                    continue
                fields.add(f"{section_name}.{name}")
        return fields
