from __future__ import annotations

import datetime as dt

import pytest

from talentshield.core import project
from talentshield.core.monitor import EXCESSIVE_PROFILE_VIEWING
from talentshield.core.projector import FIELD_LEVELS, age_band, format_salary_range, region_for

TODAY = dt.date(2025, 1, 6)


def fields_up_to(level: int) -> set[str]:
    return {name for name, minimum in FIELD_LEVELS.items() if minimum <= level}


def test_level_one_shows_only_basic_information(candidate_record):
    profile = project(candidate_record, 1, today=TODAY)

    assert profile.visible_fields() == fields_up_to(1)
    assert profile.skills is None
    assert profile.portfolio is None
    assert profile.contact is None
    assert profile.basic.first_name == "Jane"
    assert profile.basic.last_initial == "S."
    assert profile.basic.age_band == "18-20"
    assert profile.basic.region == "North West England"


@pytest.mark.parametrize("level", [1, 2, 3, 4])
def test_no_field_is_visible_below_its_level(candidate_record, level):
    visible = project(candidate_record, level, today=TODAY).visible_fields()

    assert all(FIELD_LEVELS[name] <= level for name in visible)
    assert visible == fields_up_to(level)


def test_visible_fields_grow_monotonically(candidate_record):
    views = [project(candidate_record, level, today=TODAY).visible_fields() for level in (1, 2, 3, 4)]

    for lower, higher in zip(views, views[1:]):
        assert lower < higher


def test_contact_details_only_at_full_access(candidate_record):
    profile = project(candidate_record, 4, today=TODAY)

    assert profile.contact.email == "jane.smith@example.com"
    assert profile.contact.phone == "07123456789"
    assert profile.contact.full_address == "1 Deansgate, Manchester, M3 1AA"
    assert profile.access.watermarked is False
    assert "07123456789" not in project(candidate_record, 3, today=TODAY).model_dump_json()


def test_video_is_watermarked_and_capped(candidate_record):
    profile = project(candidate_record, 3, employer_id="E1", today=TODAY)

    video = profile.portfolio.video
    assert video.url == "https://media.example/videos/c1.mp4?watermark=E1&access=limited"
    assert video.max_duration_seconds == 30
    assert video.watermarked is True
    assert profile.portfolio.references == "References available upon request"


def test_video_without_employer_uses_anonymous_watermark(make_record):
    record = make_record(video={"url": "https://media.example/v.mp4?t=1", "duration_seconds": 12})

    video = project(record, 3, today=TODAY).portfolio.video

    assert video.url == "https://media.example/v.mp4?t=1&watermark=anonymous&access=limited"
    assert video.max_duration_seconds == 12


def test_salary_is_rounded_outward(candidate_record):
    profile = project(candidate_record, 2, today=TODAY)

    assert profile.skills.work_preferences.salary_range == "£22,000 - £26,000"
    assert profile.skills.work_preferences.work_type == "Hybrid"


@pytest.mark.parametrize(
    ("low", "high", "expected"),
    [
        (None, None, "Not specified"),
        (20000, None, "£20,000 - £20,000"),
        (None, 23000, "£22,000 - £24,000"),
        (18001, 19999, "£18,000 - £20,000"),
    ],
)
def test_format_salary_range(low, high, expected):
    assert format_salary_range(low, high) == expected


def test_missing_preferences_render_placeholders(make_record):
    record = make_record(work_preferences={})

    preferences = project(record, 2, today=TODAY).skills.work_preferences

    assert preferences.work_type == "Not specified"
    assert preferences.salary_range == "Not specified"


def test_summary_is_truncated(make_record):
    record = make_record(summary="a" * 250)

    summary = project(record, 1, today=TODAY).basic.summary

    assert len(summary) == 203
    assert summary.endswith("...")


@pytest.mark.parametrize(
    ("city", "region", "expected"),
    [
        ("Manchester", None, "North West England"),
        ("  london ", None, "Greater London"),
        ("Leeds", None, "United Kingdom"),
        (None, None, "United Kingdom"),
        ("Leeds", "Yorkshire", "Yorkshire"),
    ],
)
def test_region_mapping(city, region, expected):
    assert region_for(city, region) == expected


@pytest.mark.parametrize(
    ("dob", "expected"),
    [
        (dt.date(2007, 1, 7), "under 18"),
        (dt.date(2007, 1, 6), "18-20"),
        (dt.date(2004, 1, 7), "18-20"),
        (dt.date(2004, 1, 6), "21-24"),
        (dt.date(2000, 1, 6), "25-29"),
        (dt.date(1995, 1, 6), "30+"),
        (None, None),
    ],
)
def test_age_band_boundaries(dob, expected):
    assert age_band(dob, TODAY) == expected


def test_projection_does_not_mutate_record(candidate_record):
    before = candidate_record.model_dump()

    project(candidate_record, 4, employer_id="E1", today=TODAY)

    assert candidate_record.model_dump() == before


def test_access_metadata_lists_restrictions(candidate_record):
    access = project(candidate_record, 2, today=TODAY).access

    assert access.level == 2
    assert access.watermarked is True
    assert "no_contact_details" in access.restrictions
    assert "limited_profile_info" not in access.restrictions
    assert list(access.restrictions) == sorted(access.restrictions)


def test_view_reads_current_grant_each_time(engine, signer, candidate_record):
    first = engine.projector.view("E1", candidate_record)
    assert first.level == 1
    assert first.skills is None

    engine.raise_to("E1", "C1", 2, signer)
    second = engine.projector.view("E1", candidate_record)

    assert second.level == 2
    assert second.skills is not None
    assert second.access.employer_id == "E1"
    assert second.access.granted_at == engine.policy.current_grant("E1", "C1").granted_at


def test_view_uses_injected_today(engine, make_record):
    record = make_record(date_of_birth="2007-01-06")

    assert engine.projector.view("E1", record).basic.age_band == "18-20"


def test_repeated_views_without_messages_are_flagged(engine, candidate_record):
    for _ in range(11):
        engine.projector.view("E1", candidate_record)
        engine.clock.advance(minutes=1)

    events = engine.monitor.list_events()

    assert [event.activity_type for event in events] == [EXCESSIVE_PROFILE_VIEWING]
    assert events[0].severity == "high"
    assert events[0].evidence.counts == {"profile_views": 11, "messages_sent": 0}
    assert engine.notifier.alerts[0]["event_id"] == events[0].event_id


def test_views_after_engagement_are_not_flagged(engine, candidate_record):
    engine.monitor.track_activity("E1", "C1", "MESSAGE_SENT")
    for _ in range(15):
        engine.projector.view("E1", candidate_record)

    assert engine.monitor.list_events() == []
