"""Tests for numbered text block parsing."""

from src.eleven_batch.services.text_blocks import make_snippet, parse_text_blocks


class TestParseTextBlocks:
    def test_numbered_blocks_in_order(self):
        raw = "1. Intro\nHello world\n2. Body\nMore text here"
        assert parse_text_blocks(raw) == ["Hello world", "More text here"]

    def test_bare_number_headers(self):
        raw = "1.\nFirst block\n2.\nSecond block\n3.\nThird block\n"
        assert parse_text_blocks(raw) == ["First block", "Second block", "Third block"]

    def test_header_without_dot(self):
        raw = "1\nAlpha\n2\nBeta"
        assert parse_text_blocks(raw) == ["Alpha", "Beta"]

    def test_multiline_body_is_kept_and_trimmed(self):
        raw = "1. Title\n  line one\nline two  \n\n2. Next\nbody"
        assert parse_text_blocks(raw) == ["line one\nline two", "body"]

    def test_no_headers_returns_whole_input(self):
        raw = "  Just some text\nspanning two lines  \n"
        assert parse_text_blocks(raw) == ["Just some text\nspanning two lines"]

    def test_single_line_without_header(self):
        assert parse_text_blocks("Hello there") == ["Hello there"]

    def test_empty_input(self):
        assert parse_text_blocks("") == []

    def test_whitespace_only_input(self):
        assert parse_text_blocks("   \n\t\n ") == []

    def test_header_only_segment_is_dropped(self):
        """A header with no body line between two blocks is discarded, not synthesized."""
        raw = "1. A\nbody a\n2. Lonely\n3. C\nbody c"
        assert parse_text_blocks(raw) == ["body a", "body c"]

    def test_only_headers_falls_back_to_whole_input(self):
        assert parse_text_blocks("1.") == ["1."]

    def test_preamble_line_is_dropped(self):
        raw = "Chapter notes\n1. First\nbody"
        assert parse_text_blocks(raw) == ["body"]

    def test_decimal_number_is_not_a_header(self):
        raw = "1. Recipe\nAdd\n1.5 cups of flour\nand stir"
        assert parse_text_blocks(raw) == ["Add\n1.5 cups of flour\nand stir"]

    def test_windows_line_endings(self):
        raw = "1. Intro\r\nHello\r\n2. Outro\r\nBye\r\n"
        assert parse_text_blocks(raw) == ["Hello", "Bye"]

    def test_result_is_a_list(self):
        assert isinstance(parse_text_blocks("1. x\ny"), list)


class TestMakeSnippet:
    def test_short_text_unchanged(self):
        assert make_snippet("hello") == "hello"

    def test_newlines_folded(self):
        assert make_snippet("a\nb") == "a b"

    def test_long_text_truncated(self):
        text = "x" * 80
        assert make_snippet(text) == "x" * 60 + "..."

    def test_custom_limit(self):
        assert make_snippet("abcdef", limit=3) == "abc..."
