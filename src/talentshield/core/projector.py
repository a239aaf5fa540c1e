"""Level-dependent projection of candidate records."""

from __future__ import annotations

import math
from datetime import date
from typing import Callable

import pendulum
import structlog

from ..schemas import CandidateRecord, StagedProfile
from ..schemas.candidate import (
    AccessMetadata,
    BasicInfo,
    ContactInfo,
    PortfolioInfo,
    SkillsInfo,
    WatermarkedMedia,
    WorkPreferencesView,
)
from .monitor import PROFILE_VIEWED, SuspicionMonitor
from .policy import AccessLevelPolicy, restrictions_for

logger = structlog.get_logger(__name__)

# dotted field -> minimum level at which it is disclosed
FIELD_LEVELS: dict[str, int] = {
    "basic.first_name": 1,
    "basic.last_initial": 1,
    "basic.age_band": 1,
    "basic.city": 1,
    "basic.region": 1,
    "basic.summary": 1,
    "basic.industry_interests": 1,
    "skills.skills": 2,
    "skills.education": 2,
    "skills.certifications": 2,
    "skills.work_preferences": 2,
    "skills.career_goals": 2,
    "portfolio.portfolio": 3,
    "portfolio.achievements": 3,
    "portfolio.video": 3,
    "portfolio.references": 3,
    "contact.email": 4,
    "contact.phone": 4,
    "contact.linkedin": 4,
    "contact.full_address": 4,
}

SECTION_LEVELS: dict[str, int] = {
    section: min(level for name, level in FIELD_LEVELS.items() if name.startswith(f"{section}."))
    for section in ("basic", "skills", "portfolio", "contact")
}

REGIONS: dict[str, str] = {
    "london": "Greater London",
    "manchester": "North West England",
    "birmingham": "West Midlands",
    "glasgow": "Scotland",
    "cardiff": "Wales",
    "belfast": "Northern Ireland",
}
DEFAULT_REGION = "United Kingdom"

SUMMARY_LIMIT = 200
SALARY_STEP = 2000
VIDEO_PREVIEW_SECONDS = 30

_AGE_BANDS: tuple[tuple[int, int | None, str], ...] = (
    (0, 17, "under 18"),
    (18, 20, "18-20"),
    (21, 24, "21-24"),
    (25, 29, "25-29"),
    (30, None, "30+"),
)


def age_on(date_of_birth: date, today: date) -> int:
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def age_band(date_of_birth: date | None, today: date) -> str | None:
    if date_of_birth is None:
        return None
    age = age_on(date_of_birth, today)
    for low, high, label in _AGE_BANDS:
        if age >= low and (high is None or age <= high):
            return label
    return None


def region_for(city: str | None, region: str | None) -> str:
    if region:
        return region
    return REGIONS.get((city or "").strip().lower(), DEFAULT_REGION)


def truncate(text: str, limit: int = SUMMARY_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def format_salary_range(min_gbp: int | None, max_gbp: int | None) -> str:
    """Render a salary range rounded outward to 2,000 steps."""
    if min_gbp is None and max_gbp is None:
        return "Not specified"
    low = min_gbp if min_gbp is not None else max_gbp
    high = max_gbp if max_gbp is not None else min_gbp
    low = math.floor(low / SALARY_STEP) * SALARY_STEP
    high = math.ceil(high / SALARY_STEP) * SALARY_STEP
    return f"£{low:,} - £{high:,}"


def watermark_url(url: str, employer_id: str | None) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}watermark={employer_id or 'anonymous'}&access=limited"


def project(
    record: CandidateRecord,
    level: int,
    *,
    employer_id: str | None = None,
    today: date | None = None,
) -> StagedProfile:
    """Project ``record`` to the fields disclosed at ``level``.

    Pure: the record is never mutated and nothing above ``level`` is read
    into the result.
    """
    today = today or pendulum.today("UTC").date()

    basic = BasicInfo(
        first_name=record.first_name or "",
        last_initial=f"{record.last_name[0].upper()}." if record.last_name else None,
        age_band=age_band(record.date_of_birth, today),
        city=record.city or "",
        region=region_for(record.city, record.region),
        summary=truncate(record.summary),
        industry_interests=record.industry_interests,
    )

    skills = None
    if level >= SECTION_LEVELS["skills"]:
        preferences = record.work_preferences
        salary = preferences.salary_range
        skills = SkillsInfo(
            skills=record.skills,
            education=record.education,
            certifications=record.certifications,
            work_preferences=WorkPreferencesView(
                work_type=preferences.work_type or "Not specified",
                salary_range=format_salary_range(
                    salary.min_gbp if salary else None,
                    salary.max_gbp if salary else None,
                ),
                industries=preferences.industries,
            ),
            career_goals=record.career_goals,
        )

    portfolio = None
    if level >= SECTION_LEVELS["portfolio"]:
        video = None
        if record.video is not None:
            video = WatermarkedMedia(
                url=watermark_url(record.video.url, employer_id),
                max_duration_seconds=min(record.video.duration_seconds, VIDEO_PREVIEW_SECONDS),
            )
        portfolio = PortfolioInfo(
            portfolio=record.portfolio,
            achievements=record.achievements,
            video=video,
        )

    contact = None
    if level >= SECTION_LEVELS["contact"]:
        contact = ContactInfo(
            email=record.contact.email,
            phone=record.contact.phone,
            linkedin=record.contact.linkedin,
            full_address=_format_address(record),
        )

    return StagedProfile(
        candidate_id=record.candidate_id,
        level=level,
        basic=basic,
        skills=skills,
        portfolio=portfolio,
        contact=contact,
        access=AccessMetadata(
            level=level,
            employer_id=employer_id,
            restrictions=tuple(sorted(restrictions_for(level))),
            watermarked=level < SECTION_LEVELS["contact"],
        ),
    )


def _format_address(record: CandidateRecord) -> str | None:
    if record.address is None:
        return None
    address = record.address
    parts = [address.line1, address.line2, address.city, address.postcode]
    rendered = ", ".join(part for part in parts if part)
    return rendered or None


class ProfileProjector:
    """Renders candidate profiles for an employer at their current grant."""

    def __init__(
        self,
        policy: AccessLevelPolicy,
        *,
        monitor: SuspicionMonitor | None = None,
        today_provider: Callable[[], date] | None = None,
    ) -> None:
        self._policy = policy
        self._monitor = monitor
        self._today = today_provider or (lambda: pendulum.today("UTC").date())

    def view(self, employer_id: str, record: CandidateRecord) -> StagedProfile:
        # re-read per call, levels are never cached
        grant = self._policy.ensure_grant(employer_id, record.candidate_id)
        profile = project(record, grant.level, employer_id=employer_id, today=self._today())
        profile = profile.model_copy(
            update={
                "access": AccessMetadata(
                    level=grant.level,
                    employer_id=employer_id,
                    granted_at=grant.granted_at,
                    restrictions=tuple(sorted(grant.restrictions)),
                    watermarked=grant.watermark_enabled,
                )
            }
        )
        if self._monitor is not None:
            self._monitor.track_activity(employer_id, record.candidate_id, PROFILE_VIEWED)
        logger.debug(
            "profile.viewed",
            employer_id=employer_id,
            candidate_id=record.candidate_id,
            level=grant.level,
        )
        return profile


__all__ = [
    "FIELD_LEVELS",
    "PROFILE_VIEWED",
    "ProfileProjector",
    "age_band",
    "format_salary_range",
    "project",
    "region_for",
]
