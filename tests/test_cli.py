import json

import pytest
from rich.console import Console

from blurry_cleaner import config
from blurry_cleaner.core.quality import QualityMetrics
from blurry_cleaner.core.records import ImageRecord
from blurry_cleaner.main import build_summary_table, main, parse_args

from conftest import checkerboard, flat


def test_parse_args_defaults():
    args = parse_args(["photos"])
    assert args.input == "photos"
    assert args.threshold == config.DEFAULT_THRESHOLD
    assert args.workers == config.DEFAULT_CONCURRENCY
    assert args.tick == config.TICK_INTERVAL
    assert not args.demo


@pytest.mark.parametrize("argv", [
    ["photos", "--threshold", "9"],
    ["photos", "--threshold", "81"],
    ["photos", "--workers", "0"],
    ["photos", "--tick", "0"],
    ["photos", "--tick", "-1"],
    [],
])
def test_parse_args_rejects_bad_input(argv):
    with pytest.raises(SystemExit):
        parse_args(argv)


def test_validate_threshold_range():
    assert config.validate_threshold(10) == 10
    assert config.validate_threshold(80) == 80
    assert config.validate_tick_interval("0.5") == 0.5
    with pytest.raises(ValueError):
        config.validate_threshold(5)


def test_missing_directory_returns_error(tmp_path):
    assert main([str(tmp_path / "nope")]) == 1


def test_demo_json_output(capsys):
    assert main(["--demo", "--workers", "2", "--tick", "0.01", "--json"]) == 0
    records = json.loads(capsys.readouterr().out)
    assert len(records) == 8
    assert all(r["analysis"] is not None for r in records)


def test_trash_flagged_moves_only_low_quality_files(tmp_path):
    root = tmp_path / "photos"
    root.mkdir()
    checkerboard(64).save(root / "crisp.png")
    flat().save(root / "dull.png")
    trash = tmp_path / "trash"

    code = main([
        str(root), "--trash-flagged", "--trash-dir", str(trash),
        "--workers", "1", "--tick", "0.01",
    ])

    assert code == 0
    assert (root / "crisp.png").exists()
    assert not (root / "dull.png").exists()
    assert (trash / "dull.png").exists()


def test_summary_table_lists_every_record():
    metrics = QualityMetrics(sharpness=80, contrast=60, noise=5, brightness=3, quality=70)
    records = [
        ImageRecord(id="a", name="a.jpg", absolute_path="/a.jpg", locator="", size=10,
                    modified_at=0.0, created_at=0.0, analysis=metrics),
        ImageRecord(id="b", name="[b].jpg", absolute_path="/b.jpg", locator="", size=10,
                    modified_at=0.0, created_at=0.0, error="[Errno 2] missing"),
    ]
    table = build_summary_table(records, threshold=42)
    assert table.row_count == 2

    console = Console(record=True, width=200)
    console.print(table)
    text = console.export_text()
    assert "keep" in text
    assert "[b].jpg" in text
    assert "failed: [Errno 2] missing" in text
