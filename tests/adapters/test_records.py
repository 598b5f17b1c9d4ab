from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from savestate.adapters.records import RecordFileError, parse_record_lines, read_records

if TYPE_CHECKING:
    from pathlib import Path


def test_steam_lines_use_steam_fallbacks() -> None:
    user_id = uuid4()
    (record,) = parse_record_lines(
        ['{"source": "steam", "external_id": 1000, "title": "", "playtime_minutes": 42}'],
        default_user_id=user_id,
    )

    assert record.external_id == "1000"
    assert record.title == "Steam App 1000"
    assert record.platform_key == "steam"
    assert record.cover_url == "https://cdn.cloudflare.steamstatic.com/steam/apps/1000/header.jpg"
    assert record.user_id == user_id
    assert record.playtime_minutes == 42


def test_platform_defaults_to_storefront_source() -> None:
    line = json.dumps(
        {
            "source": "psn",
            "external_id": "CUSA07408_00",
            "title": " Bloodborne ",
            "earned": 12,
            "total": 40,
            "last_played_at": "2025-06-01T20:30:00Z",
        }
    )

    (record,) = parse_record_lines([line])

    assert record.platform_key == "psn"
    assert record.title == "Bloodborne"
    assert record.has_progress
    assert record.last_played_at == datetime(2025, 6, 1, 20, 30, tzinfo=UTC)
    assert record.user_id is None


def test_line_user_wins_over_default() -> None:
    own = uuid4()
    line = json.dumps({"source": "xbox", "external_id": "9NBLGGH4R315", "user_id": str(own)})

    (record,) = parse_record_lines([line], default_user_id=uuid4())

    assert record.user_id == own


def test_blank_and_comment_lines_are_skipped() -> None:
    metroid = json.dumps(
        {"source": "ra", "external_id": "1448", "title": "Super Metroid", "platform_key": "ra-snes"}
    )
    lines = ["", "# exported 2025-06-01", metroid, "   "]

    records = list(parse_record_lines(lines))

    assert [record.platform_key for record in records] == ["ra-snes"]


@pytest.mark.parametrize(
    ("line", "message"),
    [
        ("{not json", "line 2"),
        ('{"source": "ra", "external_id": "1448"}', "platform_key is required"),
        ('{"source": "steam", "external_id": "  "}', "must not be blank"),
        ('{"external_id": "1"}', "source"),
    ],
)
def test_bad_lines_report_line_number(line: str, message: str) -> None:
    lines = ['{"source": "steam", "external_id": 1}', line]

    with pytest.raises(RecordFileError, match=message) as excinfo:
        list(parse_record_lines(lines))

    assert excinfo.value.line_number == 2


def test_read_records_validates_whole_file(tmp_path: Path) -> None:
    path = tmp_path / "records.jsonl"
    path.write_text(
        '{"source": "steam", "external_id": 1}\n{"source": "steam", "external_id": 2}\n',
        encoding="utf-8",
    )

    records = read_records(path)

    assert [record.external_id for record in records] == ["1", "2"]
