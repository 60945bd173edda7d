"""
File extension to language tag lookup.
"""

UNKNOWN_LANGUAGE = "unknown"

LANGUAGE_MAP = {
    "js": "javascript",
    "jsx": "javascript",
    "vue": "javascript",
    "svelte": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "rb": "ruby",
    "cs": "csharp",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "hpp": "cpp",
    "c": "c",
    "h": "c",
    "kt": "kotlin",
    "swift": "swift",
    "scala": "scala",
    "dart": "dart",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "less": "less",
    "sql": "sql",
    "sh": "bash",
    "bash": "bash",
    "zsh": "bash",
    "ps1": "powershell",
    "yaml": "yaml",
    "yml": "yaml",
    "json": "json",
    "xml": "xml",
    "md": "markdown",
    "dockerfile": "dockerfile",
}


def detect_language(file_path: str) -> str:
    """
    Map a file path to a lowercase language tag.

    The extension is whatever follows the last dot of the path, so a bare
    ``Dockerfile`` resolves through its whole name. Never raises.
    """
    if not file_path:
        return UNKNOWN_LANGUAGE
    extension = file_path.rsplit(".", 1)[-1]
    # "src/Dockerfile" has no dot: only the final path segment counts
    extension = extension.rsplit("/", 1)[-1].lower()
    return LANGUAGE_MAP.get(extension, UNKNOWN_LANGUAGE)
