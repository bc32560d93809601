"""
Language registry used to render header comments in completion prompts.

Maps editor language ids to a display name and the language's native
comment syntax.
"""

from typing import NamedTuple


class CommentSyntax(NamedTuple):
    """Start/end markers for a single comment line."""

    start: str
    end: str = ""


class LanguageInfo(NamedTuple):
    """Display name and comment syntax for a language id."""

    name: str
    comment: CommentSyntax


_HASH = CommentSyntax("#")
_SLASH = CommentSyntax("//")
_BLOCK = CommentSyntax("/*", "*/")
_HTML = CommentSyntax("<!--", "-->")
_DASH = CommentSyntax("--")

SUPPORTED_LANGUAGES: dict[str, LanguageInfo] = {
    "python": LanguageInfo("Python", _HASH),
    "javascript": LanguageInfo("JavaScript", _SLASH),
    "javascriptreact": LanguageInfo("JavaScript React", _SLASH),
    "typescript": LanguageInfo("TypeScript", _SLASH),
    "typescriptreact": LanguageInfo("TypeScript React", _SLASH),
    "java": LanguageInfo("Java", _SLASH),
    "c": LanguageInfo("C", _SLASH),
    "cpp": LanguageInfo("C++", _SLASH),
    "csharp": LanguageInfo("C#", _SLASH),
    "go": LanguageInfo("Go", _SLASH),
    "rust": LanguageInfo("Rust", _SLASH),
    "kotlin": LanguageInfo("Kotlin", _SLASH),
    "swift": LanguageInfo("Swift", _SLASH),
    "php": LanguageInfo("PHP", _SLASH),
    "ruby": LanguageInfo("Ruby", _HASH),
    "shellscript": LanguageInfo("Shell", _HASH),
    "yaml": LanguageInfo("YAML", _HASH),
    "toml": LanguageInfo("TOML", _HASH),
    "r": LanguageInfo("R", _HASH),
    "lua": LanguageInfo("Lua", _DASH),
    "sql": LanguageInfo("SQL", _DASH),
    "haskell": LanguageInfo("Haskell", _DASH),
    "css": LanguageInfo("CSS", _BLOCK),
    "scss": LanguageInfo("SCSS", _BLOCK),
    "html": LanguageInfo("HTML", _HTML),
    "xml": LanguageInfo("XML", _HTML),
    "markdown": LanguageInfo("Markdown", _HTML),
    "vue": LanguageInfo("Vue", _HTML),
}

# File extension to language id mapping
EXTENSION_MAP = {
    ".py": "python",
    ".pyw": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".kt": "kotlin",
    ".swift": "swift",
    ".php": "php",
    ".rb": "ruby",
    ".sh": "shellscript",
    ".bash": "shellscript",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".r": "r",
    ".lua": "lua",
    ".sql": "sql",
    ".hs": "haskell",
    ".css": "css",
    ".scss": "scss",
    ".html": "html",
    ".htm": "html",
    ".xml": "xml",
    ".md": "markdown",
    ".markdown": "markdown",
    ".vue": "vue",
}

PLAIN_TEXT = "plaintext"


def get_language(language_id: str | None) -> LanguageInfo | None:
    """Look up a language by editor id, or None if it is not supported."""
    if not language_id:
        return None
    return SUPPORTED_LANGUAGES.get(language_id)


def get_language_id_from_path(filepath: str) -> str:
    """Determine the language id from a file extension."""
    if not filepath:
        return PLAIN_TEXT

    filepath_lower = filepath.lower()
    for ext, language_id in EXTENSION_MAP.items():
        if filepath_lower.endswith(ext):
            return language_id
    return PLAIN_TEXT
