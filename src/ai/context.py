"""
Cursor and file context for FIM prompts.

Extracts the prefix/suffix window around the cursor and, optionally, the text
of other open documents whose paths look related to the active one.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import NamedTuple

from core.languages import get_language

logger = logging.getLogger(__name__)

# Paths containing one of these belong to version control, never to context
VCS_MARKERS = (".git", ".hg", ".svn")

# Weight passed to string_score when a character is missing from the target
PATH_FUZZINESS = 0.5

# Folder similarity + file name similarity must exceed this to be included
RELATED_FILE_THRESHOLD = 1.0


class Position(NamedTuple):
    """0-based cursor position."""

    line: int
    character: int


@dataclass(frozen=True)
class DocumentSnapshot:
    """Text of a document at the moment a completion was requested."""

    path: str
    text: str
    language_id: str = "plaintext"


@dataclass(frozen=True)
class CursorContext:
    """Text immediately before and after the cursor."""

    prefix: str
    suffix: str


@dataclass(frozen=True)
class RelatedFileSnippet:
    """Another open document selected for the prompt's file context."""

    header_comment: str
    body: str
    similarity_score: float

    @property
    def text(self) -> str:
        return f"{self.header_comment}{self.body}"


def clamp_position(lines: list[str], position: Position) -> Position:
    """Clip a position to the bounds of the given lines."""
    line = min(max(0, position.line), len(lines) - 1)
    character = min(max(0, position.character), len(lines[line]))
    return Position(line, character)


def extract_context(text: str, position: Position, context_length: int) -> CursorContext:
    """Extract prefix and suffix from document text around the cursor.

    Args:
        text: Full document text
        position: Cursor position (0-based)
        context_length: Number of lines to take above and below the cursor

    Returns:
        CursorContext whose prefix ends and suffix starts exactly at the cursor.
    """
    lines = text.split("\n")
    line, col = clamp_position(lines, position)

    # Prefix: whole lines above the cursor + current line up to the cursor
    start_line = max(0, line - context_length)
    prefix = "\n".join([*lines[start_line:line], lines[line][:col]])

    # Suffix: rest of current line + lines below, ending at the start of the window's last line
    end_line = line + context_length
    if end_line < len(lines):
        suffix = "\n".join([lines[line][col:], *lines[line + 1 : end_line]]) + "\n"
    else:
        suffix = "\n".join([lines[line][col:], *lines[line + 1 :]])

    return CursorContext(prefix=prefix, suffix=suffix)


def text_after_cursor(text: str, position: Position) -> str:
    """Text between the cursor and the end of its line."""
    lines = text.split("\n")
    line, col = clamp_position(lines, position)
    return lines[line][col:]


def lines_below_cursor(text: str, position: Position, count: int) -> list[str]:
    """Up to `count` whole lines following the cursor's line."""
    lines = text.split("\n")
    line, _col = clamp_position(lines, position)
    return lines[line + 1 : line + 1 + count]


def string_score(string: str, word: str, fuzziness: float | None = None) -> float:
    """Fuzzy similarity of `word` against `string` in [0, 1].

    Characters of `word` are located in order inside `string`. Consecutive
    matches and matches after a space score highest, exact-case matches get a
    small bonus. With `fuzziness` set, a missing character lowers the score by
    (1 - fuzziness) instead of failing the whole match.
    """
    if string == word:
        return 1.0
    if not word or not string:
        return 0.0

    lower_string = string.lower()
    lower_word = word.lower()
    running_score = 0.0
    start_at = 0
    fuzzies = 1.0
    fuzzy_factor = 1 - fuzziness if fuzziness else 0.0

    for i, char in enumerate(lower_word):
        index = lower_string.find(char, start_at)
        if index == -1:
            if not fuzziness:
                return 0.0
            fuzzies += fuzzy_factor
            continue

        if index == start_at:
            char_score = 0.7
        else:
            char_score = 0.1
            if string[index - 1] == " ":
                char_score += 0.8

        if string[index] == word[i]:
            char_score += 0.1

        running_score += char_score
        start_at = index + 1

    final_score = 0.5 * (running_score / len(string) + running_score / len(word)) / fuzzies

    if lower_word[0] == lower_string[0] and final_score < 0.85:
        final_score += 0.15

    return min(final_score, 1.0)


def file_path_similarity(path1: str, path2: str) -> float:
    """Folder similarity + file name similarity of two paths, in [0, 2]."""
    components1 = path1.replace("\\", "/").split("/")
    components2 = path2.replace("\\", "/").split("/")

    folder_similarity = string_score(
        "/".join(components1[:-1]), "/".join(components2[:-1]), PATH_FUZZINESS
    )
    filename_similarity = string_score(components1[-1], components2[-1], PATH_FUZZINESS)

    return folder_similarity + filename_similarity


def build_file_header(language_id: str | None, path: str) -> str:
    """Language and path header rendered in the language's comment syntax.

    Returns an empty string for languages missing from the registry.
    """
    language = get_language(language_id)
    if language is None:
        return ""

    start, end = language.comment
    language_line = f"{start} Language: {language.name} ({language_id}) {end}".rstrip()
    path_line = f"{start} File uri: {path} ({language_id}) {end}".rstrip()
    return f"\n{language_line}\n{path_line}\n"


def _is_vcs_path(path: str) -> bool:
    return any(marker in path for marker in VCS_MARKERS)


def collect_related_files(
    active: DocumentSnapshot, open_documents: Iterable[DocumentSnapshot]
) -> list[RelatedFileSnippet]:
    """Select open documents whose path is similar to the active document's."""
    snippets = []
    for document in open_documents:
        if document.path == active.path or _is_vcs_path(document.path):
            continue

        score = file_path_similarity(active.path, document.path)
        if score > RELATED_FILE_THRESHOLD:
            snippets.append(
                RelatedFileSnippet(
                    header_comment=build_file_header(document.language_id, document.path),
                    body=document.text,
                    similarity_score=score,
                )
            )
        else:
            logger.debug("Skipping %s for file context (score %.2f)", document.path, score)
    return snippets


def build_file_context(snippets: Iterable[RelatedFileSnippet]) -> str:
    """Join related file snippets, in document order, separated by newlines."""
    return "\n".join(snippet.text for snippet in snippets)
