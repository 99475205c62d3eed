import pytest

from sandbot.files import FileSystemListing, format_file_size, is_pattern_file, is_previewable

LISTING = {
    "rslt": "ok",
    "fsName": "sd",
    "files": [
        {"name": "Spiral.thr", "size": 2048},
        {"name": ".network", "size": 64},
        {"name": "evening.seq", "size": 20},
        {"name": "heart.thr", "size": "bad"},
    ],
}


def test_dotfiles_are_hidden():
    listing = FileSystemListing.from_json(LISTING)
    assert listing.fs_name == "sd"
    assert [f.name for f in listing.files] == ["Spiral.thr", "evening.seq", "heart.thr"]
    assert listing.find("heart.thr").size == 0
    assert listing.find(".network") is None


def test_search_is_case_insensitive_and_sorted():
    listing = FileSystemListing.from_json(LISTING)
    assert [f.name for f in listing.search("")] == ["Spiral.thr", "evening.seq", "heart.thr"]
    assert [f.name for f in listing.search("SPI")] == ["Spiral.thr"]
    assert [f.name for f in listing.search(".thr")] == ["Spiral.thr", "heart.thr"]
    assert listing.search("nothing") == []


@pytest.mark.parametrize(
    "size, label",
    [(0, "0 B"), (1023, "1023 B"), (1024, "1.0 KB"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5.0 MB")],
)
def test_format_file_size(size, label):
    assert format_file_size(size) == label


def test_pattern_file_extensions():
    assert is_pattern_file("a.THR")
    assert is_pattern_file("b.seq")
    assert not is_pattern_file("c.txt")


def test_only_thr_files_are_previewable():
    assert is_previewable("Spiral.THR")
    assert not is_previewable("evening.seq")
    listing = FileSystemListing.from_json({"files": [{"name": "a.thr"}, {"name": "b.seq"}]})
    assert [f.previewable for f in listing.files] == [True, False]
