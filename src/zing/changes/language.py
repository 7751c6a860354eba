"""
Heuristics for naming the programming language of a changed file.

Detection only looks at the file extension. It is deterministic so the
per-language breakdown in the prompt is stable for a given change set.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Dict


_LANGUAGES: Dict[str, str] = {
    ".go": "Go",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".py": "Python",
    ".rb": "Ruby",
    ".java": "Java",
    ".php": "PHP",
    ".rs": "Rust",
    ".c": "C",
    ".cpp": "C++",
    ".cs": "C#",
    ".html": "HTML",
    ".css": "CSS",
    ".md": "Markdown",
}


def detect_language(file_path: str) -> str:
    """Return the language name for ``file_path``, or ``"Unknown"``.

    >>> detect_language("src/app.TSX")
    'TypeScript'
    >>> detect_language("Makefile")
    'Unknown'
    """
    ext = PurePosixPath(file_path).suffix.lower()
    return _LANGUAGES.get(ext, "Unknown")
