import pytest

from fshistory.errors import ProgramExit
from fshistory.fs import ENTRY_HEADER, MAX_FILES, FileSystem, build_image


@pytest.fixture
def fs():
    return FileSystem.from_image(
        build_image([("fs4.exe", b"MZ-data"), ("ega1.gra", b"\x01\x02"), ("f6h", b""), ("cga.gra", b"x")])
    )


def test_image_round_trip(fs):
    assert [e.filename for e in fs.files] == ["fs4.exe", "ega1.gra", "f6h", "cga.gra"]
    assert bytes(fs.files[0].data) == b"MZ-data"
    assert fs.files[2].size == 0


def test_image_layout_has_fixed_header():
    image = build_image({"a": b"xyz"})
    assert len(image) == ENTRY_HEADER + 3
    assert image[:2] == b"a\0"
    assert image[-3:] == b"xyz"


def test_find_is_case_insensitive(fs):
    found = fs.find("FS4.EXE")
    assert found is not None
    index, entry = found
    assert index == 0
    assert entry.filename == "fs4.exe"


def test_find_missing_returns_none(fs):
    assert fs.find("nothing.txt") is None


def test_wildcard_find_and_continue(fs):
    first = fs.find("*.GRA")
    assert first is not None
    assert first[1].filename == "ega1.gra"
    second = fs.find("*.gra", first[0] + 1)
    assert second is not None
    assert second[1].filename == "cga.gra"
    assert fs.find("*.gra", second[0] + 1) is None


def test_create_lowercases_and_is_findable(fs):
    entry = fs.create("SAVE.DAT")
    assert entry.filename == "save.dat"
    found = fs.find("save.dat")
    assert found is not None and found[1] is entry


def test_write_grows_file(fs):
    entry = fs.create("out.bin")
    fs.write(entry, b"abc", 0)
    fs.write(entry, b"de", 5)
    assert bytes(entry.data) == b"abc\0\0de"
    fs.write(entry, b"Z", 1)
    assert bytes(entry.data) == b"aZc\0\0de"


def test_write_negative_offset_rejected(fs):
    with pytest.raises(ValueError):
        fs.write(fs.files[0], b"x", -1)


def test_truncated_image_rejected():
    image = build_image({"a": b"xyz"})
    with pytest.raises(ValueError):
        FileSystem.from_image(image[:-1])
    with pytest.raises(ValueError):
        FileSystem.from_image(image[:10])


def test_too_many_files_exit():
    image = build_image([(f"f{i}", b"") for i in range(MAX_FILES)])
    with pytest.raises(ProgramExit) as info:
        FileSystem.from_image(image)
    assert info.value.status == 1


def test_long_name_rejected():
    with pytest.raises(ValueError):
        build_image({"a" * 256: b""})