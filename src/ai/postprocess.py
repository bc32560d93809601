"""
Post-processing that turns raw model output into a safe insertion.

Every function here is pure: raw completion and editor text in, text out.
format_completion() runs the steps in order.
"""

import re
from collections.abc import Iterable, Sequence

BRACKET_PAIRS = {"(": ")", "[": "]", "{": "}"}
OPENING_BRACKETS = tuple(BRACKET_PAIRS)
CLOSING_BRACKETS = tuple(BRACKET_PAIRS.values())
ALL_BRACKETS = OPENING_BRACKETS + CLOSING_BRACKETS
QUOTES = ('"', "'", "`")

# <name attr="..."> or </name>; self-closing tags end in />
TAG_RE = re.compile(r"<(/?)([A-Za-z][\w:.-]*)([^<>\n]*?)(/?)>")
VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)

NORMALIZE_RE = re.compile(r"\r\n?")


def is_single_bracket(text: str) -> bool:
    """True if text is exactly one bracket character."""
    return len(text) == 1 and text in ALL_BRACKETS


def normalize_line_endings(text: str) -> str:
    """Convert CRLF and CR line endings to LF."""
    return NORMALIZE_RE.sub("\n", text)


def count_lines(text: str) -> int:
    return len(text.splitlines())


def _match_tag(completion: str, index: int) -> re.Match | None:
    """Markup tag starting at index, or None for comparisons and generics like List<int>."""
    if (
        index
        and not completion.startswith("</", index)
        and (completion[index - 1].isalnum() or completion[index - 1] in "_.")
    ):
        return None
    return TAG_RE.match(completion, index)


def match_brackets(completion: str) -> str:
    """Balance brackets and markup tags within the completion in a single pass.

    Closing brackets or tags with no opener in the completion are kept (they
    close something before the cursor). A closer that does not match the
    innermost opener of its kind ends the completion there. Openers left
    unclosed on the last line kept are closed at its end, innermost first;
    openers on earlier lines start blocks and are left alone. Brackets inside
    string literals are ignored.
    """
    brackets: list[tuple[str, int, int]] = []  # (closer, line, offset)
    tags: list[tuple[str, int, int]] = []
    quote = None
    line = 0
    kept = len(completion)
    index = 0

    while index < len(completion):
        char = completion[index]
        if char == "\n":
            line += 1
            quote = None
        elif quote:
            if char == quote and completion[index - 1] != "\\":
                quote = None
        elif char in QUOTES:
            quote = char
        elif char == "<" and (tag := _match_tag(completion, index)):
            closing, name, _attributes, self_closing = tag.groups()
            if closing:
                if tags:
                    if tags[-1][0] != f"</{name}>":
                        kept = index
                        break
                    tags.pop()
            elif not self_closing and name.lower() not in VOID_TAGS:
                tags.append((f"</{name}>", line, index))
            index = tag.end()
            continue
        elif char in OPENING_BRACKETS:
            brackets.append((BRACKET_PAIRS[char], line, index))
        elif char in CLOSING_BRACKETS and brackets:
            if brackets[-1][0] != char:
                kept = index
                break
            brackets.pop()
        index += 1

    text = completion[:kept]
    truncated = kept < len(completion)
    if quote:
        return text

    unclosed = sorted(
        (entry for entry in brackets + tags if entry[1] == line),
        key=lambda entry: entry[2],
        reverse=True,
    )
    closers = "".join(closer for closer, _line, _offset in unclosed)
    if not closers:
        return text.rstrip() if truncated else text
    return text.rstrip() + closers


def remove_after_cursor_duplicate(completion: str, text_after_cursor: str) -> str:
    """Drop text the completion repeats from after the cursor on the current line."""
    if not text_after_cursor:
        return completion

    normalized = normalize_line_endings(completion)
    if (
        (normalized and normalized.strip() == text_after_cursor.strip())
        or not normalized
        or completion.endswith(text_after_cursor)
    ):
        if completion.endswith(text_after_cursor):
            return completion[: -len(text_after_cursor)]
        return completion.replace(text_after_cursor, "", 1)
    return completion


def remove_duplicate_lines_down(completion: str, lines_below: Iterable[str]) -> str:
    """Drop completion lines that already exist below the cursor.

    Comparison ignores surrounding whitespace; blank lines are never dropped.
    """
    existing = {line.strip() for line in lines_below if line.strip()}
    if not existing:
        return completion

    kept = [line for line in completion.split("\n") if not line.strip() or line.strip() not in existing]
    return "\n".join(kept)


def remove_double_quote_endings(completion: str, next_character: str) -> str:
    """Drop the completion's closing quote when the same quote follows the cursor."""
    if next_character in QUOTES and completion.endswith(next_character):
        return completion[:-1]
    return completion


def strip_stop_sequences(completion: str, stop: Iterable[str]) -> str:
    """Remove every literal occurrence of each stop sequence."""
    for stop_word in stop:
        if stop_word:
            completion = completion.replace(stop_word, "")
    return completion


def format_completion(
    completion: str,
    text_after_cursor: str,
    lines_below: Sequence[str],
    use_multiline: bool,
) -> str:
    """Run the post-processing steps on a finalized raw completion.

    Args:
        completion: Raw completion with stop sequences already removed
        text_after_cursor: Text between the cursor and the end of its line
        lines_below: Document lines following the cursor's line
        use_multiline: Whether multi-line completions are enabled

    Returns:
        Text that can be inserted at the cursor as-is.
    """
    original = completion

    # Exact repeat of the rest of the line: nothing to insert
    if text_after_cursor.strip() and normalize_line_endings(original).strip() == text_after_cursor.strip():
        return ""

    completion = match_brackets(completion)
    normalized = normalize_line_endings(completion)
    completion = remove_after_cursor_duplicate(completion, text_after_cursor)

    if is_single_bracket(completion.strip()):
        return completion.strip()

    if not use_multiline or count_lines(normalized) >= 2:
        completion = remove_duplicate_lines_down(completion, lines_below)

    completion = remove_double_quote_endings(completion, text_after_cursor[:1])

    if completion.strip() == "" and original != "\n":
        completion = ""

    return completion
