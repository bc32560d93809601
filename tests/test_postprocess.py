"""Tests for completion post-processing (brackets, duplicates, quotes, whitespace)."""

from ai.postprocess import (
    format_completion,
    is_single_bracket,
    match_brackets,
    normalize_line_endings,
    remove_after_cursor_duplicate,
    remove_double_quote_endings,
    remove_duplicate_lines_down,
    strip_stop_sequences,
)

# ---------------------------------------------------------------------------
# match_brackets()
# ---------------------------------------------------------------------------


class TestMatchBrackets:
    """Test single-pass bracket balancing."""

    def test_closes_open_bracket_on_last_line(self):
        assert match_brackets("foo(") == "foo()"

    def test_closes_nested_brackets_in_order(self):
        assert match_brackets("call([1, {") == "call([1, {}])"

    def test_balanced_text_unchanged(self):
        assert match_brackets("items[0](x)") == "items[0](x)"

    def test_keeps_closer_for_bracket_opened_before_cursor(self):
        """A lone closing bracket closes something in the prefix."""
        assert match_brackets("a, b)") == "a, b)"

    def test_truncates_at_mismatched_closer_and_closes_opener(self):
        """Text from a mismatched closer on is dropped; the kept opener is still closed."""
        assert match_brackets("foo(a]  rest") == "foo(a)"
        assert match_brackets("foo(bar]") == "foo(bar)"

    def test_truncation_leaves_openers_on_earlier_lines(self):
        assert match_brackets("if (x) {\n  call(a]") == "if (x) {\n  call(a)"

    def test_ignores_brackets_in_strings(self):
        assert match_brackets('print("(")') == 'print("(")'

    def test_leaves_block_openers_on_earlier_lines(self):
        """Braces opened on earlier lines start blocks and stay open."""
        completion = "function f() {\n  return 1;"
        assert match_brackets(completion) == completion

    def test_bare_newline_unchanged(self):
        assert match_brackets("\n") == "\n"


class TestMatchTags:
    """Test markup tag balancing in the same pass."""

    def test_closes_open_tag_on_last_line(self):
        assert match_brackets("<span>Hello") == "<span>Hello</span>"

    def test_closes_tags_and_brackets_innermost_first(self):
        assert match_brackets('<div class="a">{items.map(') == '<div class="a">{items.map()}</div>'

    def test_balanced_markup_unchanged(self):
        assert match_brackets("<li><b>x</b></li>") == "<li><b>x</b></li>"

    def test_truncates_at_mismatched_closing_tag(self):
        assert match_brackets("<em>text</strong> more") == "<em>text</em>"

    def test_keeps_closing_tag_opened_before_cursor(self):
        assert match_brackets("done</p>") == "done</p>"

    def test_self_closing_and_void_tags_not_closed(self):
        assert match_brackets('<img src="a.png"><br/>') == '<img src="a.png"><br/>'

    def test_generics_and_comparisons_are_not_tags(self):
        assert match_brackets("List<String> names") == "List<String> names"
        assert match_brackets("if a < b and c > d:") == "if a < b and c > d:"


class TestIsSingleBracket:
    def test_single_brackets(self):
        assert all(is_single_bracket(c) for c in "()[]{}")

    def test_not_single_bracket(self):
        assert is_single_bracket("()") is False
        assert is_single_bracket("a") is False
        assert is_single_bracket("") is False


# ---------------------------------------------------------------------------
# Individual steps
# ---------------------------------------------------------------------------


class TestSteps:
    """Test each transformation on its own."""

    def test_normalize_line_endings(self):
        assert normalize_line_endings("a\r\nb\rc\n") == "a\nb\nc\n"

    def test_after_cursor_suffix_removed(self):
        assert remove_after_cursor_duplicate("foo()", ")") == "foo("

    def test_after_cursor_equal_content_removed(self):
        assert remove_after_cursor_duplicate("  bar\n", "bar") == "  \n"

    def test_after_cursor_unrelated_kept(self):
        assert remove_after_cursor_duplicate("x + 1", ")") == "x + 1"

    def test_duplicate_lines_below_removed(self):
        completion = "    x = compute()\n    return x"
        below = ["    return x", "", "def other():"]
        assert remove_duplicate_lines_down(completion, below) == "    x = compute()"

    def test_duplicate_lines_keeps_blank_lines(self):
        assert remove_duplicate_lines_down("a\n\nb", ["", "c"]) == "a\n\nb"

    def test_double_quote_ending_removed(self):
        assert remove_double_quote_endings('hello"', '"') == "hello"

    def test_quote_kept_when_next_char_differs(self):
        assert remove_double_quote_endings("'hello'", '"') == "'hello'"

    def test_strip_stop_sequences(self):
        assert strip_stop_sequences("helloSTOPworld", ["STOP"]) == "helloworld"

    def test_strip_stop_sequences_is_literal(self):
        """Stop sequences are removed as plain text, not as patterns."""
        assert strip_stop_sequences("a.*b<|endoftext|>", [".*", "<|endoftext|>"]) == "ab"


# ---------------------------------------------------------------------------
# format_completion()
# ---------------------------------------------------------------------------


class TestFormatCompletion:
    """Test the full pipeline."""

    def test_completion_equal_to_after_cursor_is_empty(self):
        for text in ["bar)", "foo(", '")', "x = 1"]:
            assert format_completion(text, text, [], use_multiline=True) == ""

    def test_single_bracket_returned_trimmed(self):
        assert format_completion("}  ", "", [], use_multiline=True) == "}"

    def test_bracket_closed_then_after_cursor_removed(self):
        """'foo(' is balanced to 'foo()', then the ')' already after the cursor is dropped."""
        assert format_completion("foo(", ")", [], use_multiline=True) == "foo("

    def test_bracket_closed_without_after_cursor(self):
        assert format_completion("foo(", "", [], use_multiline=True) == "foo()"

    def test_duplicate_lines_removed_in_single_line_mode(self):
        result = format_completion("return total", "", ["return total"], use_multiline=False)
        assert result == ""

    def test_single_line_in_multiline_mode_keeps_duplicates(self):
        """One-line completions in multi-line mode skip duplicate-line removal."""
        result = format_completion("return total", "", ["return total"], use_multiline=True)
        assert result == "return total"

    def test_multiline_duplicates_removed(self):
        completion = "    total = a + b\n    return total"
        result = format_completion(completion, "", ["    return total"], use_multiline=True)
        assert result == "    total = a + b"

    def test_quote_ending_cleanup(self):
        assert format_completion('world"', '"', [], use_multiline=True) == "world"

    def test_blank_completion_collapsed(self):
        assert format_completion("   \n  ", "", [], use_multiline=True) == ""

    def test_bare_newline_preserved(self):
        assert format_completion("\n", "", [], use_multiline=True) == "\n"

    def test_indentation_preserved(self):
        completion = "    if True:\n        print('yes')"
        assert format_completion(completion, "", [], use_multiline=True) == completion
