import struct

import pytest

from sbunix.newfs import SECTOR_SIZE, format_disk, main


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "disk.img"
    path.write_bytes(bytes(4096))
    return path


def test_superblock_magic_written(image):
    format_disk(str(image))
    data = image.read_bytes()
    assert data[:4] == struct.pack("<I", 0x20363035)


def test_inode_marker_written(image):
    format_disk(str(image))
    data = image.read_bytes()
    assert data[SECTOR_SIZE : SECTOR_SIZE + 8] == b"DEADCODE"


def test_rest_of_image_untouched(image):
    format_disk(str(image))
    data = image.read_bytes()
    assert len(data) == 4096
    assert data[4:SECTOR_SIZE] == bytes(SECTOR_SIZE - 4)
    assert data[SECTOR_SIZE + 8 :] == bytes(4096 - SECTOR_SIZE - 8)


def test_formatting_twice_is_stable(image):
    format_disk(str(image))
    first = image.read_bytes()
    format_disk(str(image))
    assert image.read_bytes() == first


def test_missing_image_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        format_disk(str(tmp_path / "absent.img"))


def test_too_small_image_raises(tmp_path):
    path = tmp_path / "tiny.img"
    path.write_bytes(bytes(16))
    with pytest.raises(ValueError):
        format_disk(str(path))


def test_main_without_arguments_prints_usage(capsys):
    assert main([]) == 0
    err = capsys.readouterr().err
    assert "Usage:" in err
    assert "disk.img" in err


def test_main_reports_missing_file(tmp_path, capsys):
    missing = str(tmp_path / "absent.img")
    assert main([missing]) == 0
    err = capsys.readouterr().err
    assert "Unable to stat" in err
    assert missing in err


def test_main_formats_image(image):
    assert main([str(image)]) == 0
    assert image.read_bytes()[:4] == struct.pack("<I", 0x20363035)