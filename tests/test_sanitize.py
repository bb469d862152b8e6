"""Tests for output filename construction."""

from m4b_maker.sanitize import output_filename


class TestOutputFilename:
    def test_appends_extension(self):
        assert output_filename("On Liberty", ".m4b") == "On Liberty.m4b"

    def test_replaces_unsafe_chars(self):
        assert output_filename("AC/DC: Live", ".m4b") == "AC_DC_ Live.m4b"
        assert output_filename('a\\b"c*d?', ".m4b") == "a_b_c_d.m4b"

    def test_not_hidden(self):
        assert output_filename("..hidden", ".m4b") == "hidden.m4b"
        assert output_filename("__private", ".m4b") == "private.m4b"

    def test_collapses_underscores(self):
        assert output_filename("a___b", ".m4b") == "a_b.m4b"

    def test_strips_trailing_dots(self):
        assert output_filename("Vol. 2...", ".m4b") == "Vol. 2.m4b"

    def test_long_title_keeps_extension(self):
        result = output_filename("x" * 400, ".m4b")
        assert result == "x" * 251 + ".m4b"

    def test_truncates_on_character_boundary(self):
        result = output_filename("é" * 200, ".m4b")
        assert result.endswith(".m4b")
        assert len(result.encode("utf-8")) <= 255
        assert set(result[:-4]) == {"é"}

    def test_empty_title_falls_back(self):
        assert output_filename("...", ".m4b") == "audiobook.m4b"
        assert output_filename("", ".m4b") == "audiobook.m4b"
