"""Tests for SeedReader."""

import logging

from corpus_miner.services.project_lifecycle import ProjectRegistry
from corpus_miner.services.seed_reader import SeedReader


def _write_seed(tmp_path, content: str):
    seed = tmp_path / "projects.csv"
    seed.write_text(content)
    return seed


class TestSeedReader:
    def test_url_only_lines_get_auto_ids(self, tmp_path):
        seed = _write_seed(tmp_path, "https://x/a.git\nhttps://x/b.git\n")

        projects = SeedReader(seed, ProjectRegistry()).read_all()

        assert [(p.git_url, p.id) for p in projects] == [
            ("https://x/a.git", 0),
            ("https://x/b.git", 1),
        ]

    def test_explicit_id_is_kept_and_raises_floor(self, tmp_path):
        seed = _write_seed(tmp_path, "https://x/a.git,100\nhttps://x/b.git\n")

        projects = SeedReader(seed, ProjectRegistry()).read_all()

        assert [p.id for p in projects] == [100, 101]

    def test_auto_then_explicit_zero_then_auto(self, tmp_path):
        """An explicit id equal to an auto id is accepted; later ids move past it."""
        seed = _write_seed(
            tmp_path, "https://x/a.git\nhttps://x/b.git,0\nhttps://x/c.git\n"
        )

        projects = SeedReader(seed, ProjectRegistry()).read_all()

        assert [p.id for p in projects] == [0, 0, 1]

    def test_too_many_fields_reported_and_skipped(self, tmp_path, caplog):
        seed = _write_seed(tmp_path, ",,,\nhttps://x/a.git\n")
        reader = SeedReader(seed, ProjectRegistry())

        with caplog.at_level(logging.ERROR):
            projects = reader.read_all()

        assert [p.git_url for p in projects] == ["https://x/a.git"]
        assert len(reader.errors) == 1
        assert reader.errors[0].line == 1
        assert "expected 1 or 2 fields, got 4" in caplog.text
        assert "Invalid format of the project url input" in caplog.text

    def test_non_numeric_id_reported(self, tmp_path):
        seed = _write_seed(tmp_path, "https://x/y.git,abc\n")
        reader = SeedReader(seed, ProjectRegistry())

        assert reader.read_all() == []
        assert "invalid id 'abc'" in str(reader.errors[0])

    def test_negative_id_reported(self, tmp_path):
        seed = _write_seed(tmp_path, "https://x/y.git,-5\n")
        reader = SeedReader(seed, ProjectRegistry())

        assert reader.read_all() == []
        assert len(reader.errors) == 1

    def test_empty_url_reported(self, tmp_path):
        seed = _write_seed(tmp_path, ",3\n")
        reader = SeedReader(seed, ProjectRegistry())

        assert reader.read_all() == []
        assert reader.errors[0].reason == "empty url"

    def test_blank_lines_skipped_silently(self, tmp_path):
        seed = _write_seed(tmp_path, "\nhttps://x/a.git\n\n")
        reader = SeedReader(seed, ProjectRegistry())

        assert len(reader.read_all()) == 1
        assert reader.errors == []

    def test_error_line_numbers_follow_file(self, tmp_path):
        seed = _write_seed(tmp_path, "https://x/a.git\n\nbad,id,here\n")
        reader = SeedReader(seed, ProjectRegistry())

        reader.read_all()

        assert reader.errors[0].line == 3
        assert str(reader.errors[0]).startswith(f"{seed}, line 3:")


class TestSeedReaderLineIsolation:
    """Each physical line is parsed on its own, whatever its neighbours hold."""

    def test_unterminated_quote_does_not_swallow_following_lines(self, tmp_path):
        seed = _write_seed(
            tmp_path,
            'https://a/1.git\n"https://x/y.git\nhttps://a/2.git\nhttps://a/3.git,7\n',
        )
        reader = SeedReader(seed, ProjectRegistry())

        projects = reader.read_all()

        assert [(p.git_url, p.id) for p in projects] == [
            ("https://a/1.git", 0),
            ("https://a/2.git", 1),
            ("https://a/3.git", 7),
        ]
        assert len(reader.errors) == 1
        assert reader.errors[0].line == 2
        assert "invalid character in url" in reader.errors[0].reason

    def test_url_with_whitespace_reported(self, tmp_path):
        seed = _write_seed(tmp_path, "https://x/a b.git\nhttps://x/c.git\n")
        reader = SeedReader(seed, ProjectRegistry())

        assert [p.git_url for p in reader.read_all()] == ["https://x/c.git"]
        assert reader.errors[0].line == 1

    def test_url_with_control_character_reported(self, tmp_path):
        seed = _write_seed(tmp_path, "https://x/a\x07.git\n")
        reader = SeedReader(seed, ProjectRegistry())

        assert reader.read_all() == []
        assert len(reader.errors) == 1

    def test_invalid_utf8_line_reported_and_intake_continues(self, tmp_path):
        seed = tmp_path / "projects.csv"
        seed.write_bytes(b"https://a/1.git\nhttps://a/\xff.git\nhttps://a/2.git\n")
        reader = SeedReader(seed, ProjectRegistry())

        projects = reader.read_all()

        assert [p.git_url for p in projects] == ["https://a/1.git", "https://a/2.git"]
        assert len(reader.errors) == 1
        assert reader.errors[0].line == 2
        assert "not valid UTF-8" in str(reader.errors[0])

    def test_windows_line_endings_and_bom(self, tmp_path):
        seed = tmp_path / "projects.csv"
        seed.write_bytes(b"\xef\xbb\xbfhttps://a/1.git\r\nhttps://a/2.git,5\r\n")

        projects = SeedReader(seed, ProjectRegistry()).read_all()

        assert [(p.git_url, p.id) for p in projects] == [
            ("https://a/1.git", 0),
            ("https://a/2.git", 5),
        ]
