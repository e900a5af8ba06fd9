import csv
import json
from datetime import date

import pytest

from dm_harvest.cli.harvest import build_config, build_parser, main
from dm_harvest.tests.dm_html import conversation_html, list_html, message_html
from dm_harvest.tests.get_fixture import get_fixture_path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CUTOFF_DATE", "ITEM_COUNT_CAP", "DEMO_MODE", "FULL_HISTORY", "DEBUG"):
        monkeypatch.delenv(f"DM_HARVEST_{name}", raising=False)


def _run(tmp_path, *extra):
    out_json = tmp_path / "messages.json"
    out_csv = tmp_path / "messages.csv"
    code = main(
        [
            "--replay",
            str(get_fixture_path("replay")),
            "--cutoff-date",
            "2024-04-01",
            "--settle-ms",
            "0",
            "--out-json",
            str(out_json),
            "--out-csv",
            str(out_csv),
            *extra,
        ]
    )
    return code, out_json, out_csv


def test_replay_end_to_end(tmp_path):
    code, out_json, out_csv = _run(tmp_path, "--self", "me")
    assert code == 0

    data = json.loads(out_json.read_text(encoding="utf-8"))
    # The group conversation is filtered and dave is older than the cutoff
    assert [item["profile_id"] for item in data] == ["alice", "bob", "carol"]
    assert data[0]["total_messages"] == 3
    bob_day = data[1]["messages_by_date"]["2024-04-20"]
    # Mentioning our handle does not make a message ours
    assert [m["position"] for m in bob_day] == ["sent by me", "sent by user"]
    assert list(data[2]["messages_by_date"]) == ["2024-04-10", "undated"]

    rows = list(csv.reader(out_csv.open(encoding="utf-8", newline="")))
    assert len(rows) == 1 + 3 + 2 + 2
    assert rows[1][:5] == ["alice", "2024-04-30", "2024-04-30T09:00:00.000Z", "Morning!", "sent by me"]
    assert rows[2][3] == 'He said "hi"'
    assert rows[3][5:] == ["Quoted tweet body", "Quoted Person @qp"]


def test_replay_summary_only(tmp_path):
    code, out_json, _ = _run(tmp_path, "--summary-only")
    assert code == 0

    data = json.loads(out_json.read_text(encoding="utf-8"))
    assert data == [
        {"profile_id": "alice", "last_activity": "2024-05-01T07:30:00.000Z"},
        {"profile_id": "bob", "last_activity": "2024-04-20T08:00:00.000Z"},
        {"profile_id": "carol", "last_activity": "2024-04-10T12:00:00.000Z"},
    ]


def test_replay_max_items(tmp_path):
    code, out_json, _ = _run(tmp_path, "--max-items", "1")
    assert code == 0
    assert [item["profile_id"] for item in json.loads(out_json.read_text())] == ["alice"]


def test_unreadable_conversation_still_in_json(tmp_path):
    replay = tmp_path / "replay"
    (replay / "list").mkdir(parents=True)
    (replay / "conversations").mkdir()
    (replay / "list" / "01.html").write_text(
        list_html([("alice", "2024-05-01T07:30:00.000Z"), ("bob", "2024-04-20T08:00:00.000Z")]),
        encoding="utf-8",
    )
    # No saved conversation for bob, so opening it fails
    (replay / "conversations" / "alice.html").write_text(
        conversation_html([message_html("hi", "2024-04-30T09:00:00.000Z")]), encoding="utf-8"
    )
    out_json = tmp_path / "messages.json"

    code = main(
        [
            "--replay",
            str(replay),
            "--cutoff-date",
            "2024-04-01",
            "--settle-ms",
            "0",
            "--out-json",
            str(out_json),
            "--out-csv",
            str(tmp_path / "messages.csv"),
        ]
    )

    assert code == 0
    data = json.loads(out_json.read_text(encoding="utf-8"))
    assert [item["profile_id"] for item in data] == ["alice", "bob"]
    assert data[1]["total_messages"] == 0
    assert data[1]["messages_by_date"] == {}


def test_fatal_setup_exits_1_without_outputs(tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    out_json = tmp_path / "messages.json"

    code = main(["--replay", str(empty), "--out-json", str(out_json)])

    assert code == 1
    assert not out_json.exists()


def test_build_config_defaults_to_one_month_back():
    config = build_config(build_parser().parse_args([]))
    assert config.cutoff_date is not None
    assert config.cutoff_date < date.today()
    assert config.full_history is True


def test_build_config_flags():
    args = build_parser().parse_args(
        ["--months-back", "3", "--demo", "--summary-only", "--max-scrolls", "20"]
    )
    config = build_config(args)
    assert config.demo_mode is True
    assert config.full_history is False
    assert config.max_scroll_iterations == 20
    assert (date.today() - config.cutoff_date).days >= 89


def test_invalid_config_exits_2(tmp_path):
    assert main(["--max-items", "0", "--replay", str(tmp_path)]) == 2
