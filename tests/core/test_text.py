"""Tests for chronicle.core.utils.text."""

from chronicle.core.utils.text import ELLIPSIS, make_excerpt, string_hash


class TestMakeExcerpt:
    def test_short_text_unchanged(self):
        assert make_excerpt("A quiet morning.") == "A quiet morning."

    def test_collapses_to_single_line(self):
        assert make_excerpt("line one\n\nline  two\tend\n") == "line one line two end"

    def test_exactly_max_length_not_truncated(self):
        text = "x" * 220
        assert make_excerpt(text) == text

    def test_truncates_with_ellipsis(self):
        excerpt = make_excerpt("y" * 500)
        assert len(excerpt) == 220
        assert excerpt.endswith(ELLIPSIS)
        assert excerpt[:-1] == "y" * 219

    def test_strips_trailing_space_before_ellipsis(self):
        text = "a" * 218 + " " + "b" * 10
        assert make_excerpt(text) == "a" * 218 + ELLIPSIS

    def test_custom_length(self):
        assert make_excerpt("abcdefghij", max_length=5) == "abcd" + ELLIPSIS

    def test_empty(self):
        assert make_excerpt("") == ""


class TestStringHash:
    def test_empty_is_zero(self):
        assert string_hash("") == 0

    def test_known_values(self):
        assert string_hash("a") == 97
        assert string_hash("ab") == 97 * 31 + 98
        # Java's "hello".hashCode() as an unsigned 32-bit value
        assert string_hash("hello") == 99162322

    def test_wraps_to_unsigned_32_bits(self):
        value = string_hash("the quick brown fox jumps over the lazy dog" * 10)
        assert 0 <= value <= 0xFFFFFFFF

    def test_non_bmp_uses_surrogate_pairs(self):
        # U+1F600 is the surrogate pair D83D DE00
        assert string_hash("😀") == (0xD83D * 31 + 0xDE00) & 0xFFFFFFFF

    def test_deterministic(self):
        assert string_hash("entry-123") == string_hash("entry-123")
