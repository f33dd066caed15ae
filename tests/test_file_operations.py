import asyncio
import logging
from pathlib import Path

import pytest

from blurry_cleaner.core.errors import FileAccessError, OversizedInputError
from blurry_cleaner.core.file_operations import FileSystemProvider, unique_destination
from blurry_cleaner.core.records import make_record_id
from blurry_cleaner.utils.utils import format_size, iter_files


def test_list_images_recurses_and_filters(image_dir, tmp_path):
    provider = FileSystemProvider(trash_dir=tmp_path / "trash")
    records = provider.list_images(image_dir)

    root = image_dir.resolve()
    names = sorted(r.name for r in records)
    assert names == sorted(["sharp.png", "soft.png", str(Path("nested") / "flat.jpg")])
    for record in records:
        absolute = root / record.name
        assert record.absolute_path == str(absolute)
        assert record.id == make_record_id(str(absolute))
        assert record.locator == absolute.as_uri()
        assert record.size == absolute.stat().st_size
        assert record.analysis is None and not record.trashed


def test_unreadable_root_is_logged_and_skipped(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        assert list(iter_files(tmp_path / "missing")) == []
    assert "Skip unreadable dir" in caplog.text


def test_read_bytes(tmp_path):
    path = tmp_path / "small.bin"
    path.write_bytes(b"12345")
    provider = FileSystemProvider(trash_dir=tmp_path / "trash")

    assert provider.read_bytes_sync(str(path)) == b"12345"
    assert asyncio.run(provider.read_bytes(str(path))) == b"12345"


def test_read_bytes_missing_file(tmp_path):
    provider = FileSystemProvider(trash_dir=tmp_path / "trash")
    with pytest.raises(FileAccessError):
        provider.read_bytes_sync(str(tmp_path / "gone.jpg"))


def test_read_bytes_rejects_files_over_30mb(tmp_path):
    big = tmp_path / "big.png"
    with open(big, "wb") as f:
        f.truncate(31 * 1024 * 1024)
    provider = FileSystemProvider(trash_dir=tmp_path / "trash")

    with pytest.raises(OversizedInputError, match="too large"):
        provider.read_bytes_sync(str(big))


def test_read_bytes_honours_custom_limit(tmp_path):
    path = tmp_path / "eleven.bin"
    path.write_bytes(b"x" * 11)
    provider = FileSystemProvider(trash_dir=tmp_path / "trash", max_bytes=10)
    with pytest.raises(OversizedInputError):
        provider.read_bytes_sync(str(path))


def test_trash_moves_files_without_clobbering(tmp_path):
    trash = tmp_path / "trash"
    first = tmp_path / "a" / "img.jpg"
    second = tmp_path / "b" / "img.jpg"
    for path, payload in ((first, b"one"), (second, b"two")):
        path.parent.mkdir()
        path.write_bytes(payload)

    result = FileSystemProvider(trash_dir=trash).trash([str(first), str(second)])

    assert result.ok
    assert not first.exists() and not second.exists()
    assert (trash / "img.jpg").read_bytes() == b"one"
    assert (trash / "img_1.jpg").read_bytes() == b"two"


def test_trash_reports_failure(tmp_path):
    result = FileSystemProvider(trash_dir=tmp_path / "trash").trash([str(tmp_path / "missing.jpg")])
    assert not result.ok
    assert result.message


def test_unique_destination(tmp_path):
    (tmp_path / "x.png").write_bytes(b"")
    (tmp_path / "x_1.png").write_bytes(b"")
    assert unique_destination(tmp_path, Path("/src/x.png")) == tmp_path / "x_2.png"
    assert unique_destination(tmp_path, Path("/src/y.png")) == tmp_path / "y.png"


def test_format_size():
    assert format_size(512) == "512 B"
    assert format_size(2048) == "2.0 KB"
    assert format_size(3 * 1024 * 1024) == "3.00 MB"


def test_trash_reports_files_moved_before_a_failure(tmp_path):
    first = tmp_path / "first.jpg"
    first.write_bytes(b"one")
    missing = tmp_path / "missing.jpg"

    result = FileSystemProvider(trash_dir=tmp_path / "trash").trash([str(first), str(missing)])

    assert not result.ok
    assert result.moved == (str(first),)
    assert (tmp_path / "trash" / "first.jpg").exists()
