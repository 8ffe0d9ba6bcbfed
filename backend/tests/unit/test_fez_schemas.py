import pytest
from pydantic import ValidationError

from fezhub.domain.fez.models import FezType
from fezhub.domain.fez.schemas import FezContentData, PostCreateData


def _fields(**overrides) -> dict:
    fields = {
        "fez_type": "music",
        "title": "Karaoke",
        "info": "Power ballads only",
        "start_time": "2019-11-21T21:00:00Z",
        "end_time": "1574380800",
        "location": "Piano bar",
        "min_capacity": 0,
        "max_capacity": 0,
    }
    fields.update(overrides)
    return fields


def test_content_accepts_epoch_iso_and_empty_times():
    data = FezContentData(**_fields())
    assert data.fez_type is FezType.MUSIC
    assert FezContentData(**_fields(start_time="", end_time="")).start_time == ""


def test_content_rejects_unparseable_time():
    with pytest.raises(ValidationError):
        FezContentData(**_fields(start_time="after dinner"))


def test_content_rejects_blank_required_text():
    with pytest.raises(ValidationError):
        FezContentData(**_fields(title="   "))
    with pytest.raises(ValidationError):
        FezContentData(**_fields(location=""))


def test_min_capacity_bound_only_applies_when_limited():
    FezContentData(**_fields(min_capacity=6, max_capacity=0))
    with pytest.raises(ValidationError):
        FezContentData(**_fields(min_capacity=6, max_capacity=4))
    with pytest.raises(ValidationError):
        FezContentData(**_fields(max_capacity=-1))


def test_fez_type_lookup_accepts_labels():
    assert FezType("Shore") is FezType.SHORE
    assert FezType("GAMING") is FezType.GAMING
    assert FezType.ACTIVITY.label == "Activity"
    with pytest.raises(ValueError):
        FezType("bingo")


def test_post_text_must_not_be_blank():
    with pytest.raises(ValidationError):
        PostCreateData(text=" ")
    assert PostCreateData(text="hi").image_data is None
