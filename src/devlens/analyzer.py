"""Line-pattern heuristics that recover a coarse class/function outline."""

import re
from pathlib import PurePosixPath
from typing import List, Optional

from .errors import InvalidInput
from .models import CLASS, FUNCTION, FileNode

INDENT_BASED = "indent-based"
BRACE_BASED = "brace-based"
LANGUAGE_FAMILIES = (INDENT_BASED, BRACE_BASED)

# Indentation-scoped sources (Python)
_PY_CLASS = re.compile(r'^class\s+(\w+)')
_PY_METHOD = re.compile(r'^(?: {4}|\t)(?:async\s+)?def\s+(\w+)')
_PY_FUNCTION = re.compile(r'^(?:async\s+)?def\s+(\w+)')

# Brace-scoped sources (JavaScript/TypeScript and friends)
_JS_CLASS = re.compile(r'^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(?!extends\b|implements\b)(\w+)')
_JS_METHOD = re.compile(
    r'^ {2}(?! )(?:(?:public|private|protected|static|async|override|readonly|get|set)\s+)*'
    r'\*?(\w+)\s*(?:<[^>]*>)?\s*\(.*\)\s*(?::\s*[^{]+)?\{\s*$'
)
_JS_FUNCTION = re.compile(r'^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(\w+)')
_JS_ARROW = re.compile(
    r'^(?:export\s+)?(?:(?:const|let|var)\s+)?(\w+)\s*(?::\s*[^=]+)?=\s*(?:async\s+)?'
    r'(?:\([^)]*\)|\w+)\s*(?::\s*[^=]+)?=>'
)
_CONTROL_KEYWORDS = frozenset({'if', 'for', 'while', 'switch', 'catch'})


def _symbol(file_name: str, name: str, kind: str, parent: Optional[FileNode] = None) -> FileNode:
    prefix = parent.path if parent is not None else file_name
    return FileNode(
        name=name,
        path=f"{prefix}/{name}" if prefix else name,
        kind=kind,
        complexity="medium" if kind == CLASS else "low",
        children=[] if kind == CLASS else None,
    )


def _check_text(content: object):
    if content is None:
        raise InvalidInput("structure", "no source text")
    if not isinstance(content, str):
        raise InvalidInput("structure", f"expected text, got {type(content).__name__}")


class CodeAnalyzer:
    """Recovers approximate outlines from source text without parsing it.

    Class context is whichever class was opened last; it is never closed by
    dedent or brace tracking, so methods after a dedent can be mis-attributed.
    """

    @staticmethod
    def language_family(filename: str, indent_extensions: Optional[List[str]] = None,
                        brace_extensions: Optional[List[str]] = None) -> Optional[str]:
        """Pick the heuristic family from a file's extension."""
        if indent_extensions is None or brace_extensions is None:
            from .config import GlobalConfig
            settings = GlobalConfig()
            indent_extensions = indent_extensions or settings.indent_extensions
            brace_extensions = brace_extensions or settings.brace_extensions

        suffix = PurePosixPath(filename).suffix.lower()
        if suffix in indent_extensions:
            return INDENT_BASED
        if suffix in brace_extensions:
            return BRACE_BASED
        return None

    @staticmethod
    def analyze_indent_based(content: str, file_name: str) -> List[FileNode]:
        """Outline Python-like source."""
        _check_text(content)
        outline: List[FileNode] = []
        current_class: Optional[FileNode] = None

        for line in content.splitlines():
            match = _PY_CLASS.match(line)
            if match:
                current_class = _symbol(file_name, match.group(1), CLASS)
                outline.append(current_class)
                continue

            match = _PY_METHOD.match(line)
            if match:
                if current_class is not None:
                    current_class.children.append(
                        _symbol(file_name, match.group(1), FUNCTION, current_class)
                    )
                continue

            match = _PY_FUNCTION.match(line)
            if match:
                outline.append(_symbol(file_name, match.group(1), FUNCTION))

        return outline

    @staticmethod
    def analyze_brace_based(content: str, file_name: str) -> List[FileNode]:
        """Outline JavaScript/TypeScript-like source."""
        _check_text(content)
        outline: List[FileNode] = []
        current_class: Optional[FileNode] = None

        for line in content.splitlines():
            match = _JS_CLASS.match(line)
            if match:
                current_class = _symbol(file_name, match.group(1), CLASS)
                outline.append(current_class)
                continue

            match = _JS_METHOD.match(line)
            if match and match.group(1) not in _CONTROL_KEYWORDS:
                if current_class is not None:
                    current_class.children.append(
                        _symbol(file_name, match.group(1), FUNCTION, current_class)
                    )
                    continue

            match = _JS_FUNCTION.match(line) or _JS_ARROW.match(line)
            if match:
                outline.append(_symbol(file_name, match.group(1), FUNCTION))

        return outline

    @classmethod
    def extract_outline(cls, content: str, language_family: str, file_name: str = "") -> List[FileNode]:
        """Outline ``content`` with the heuristics for ``language_family``.

        Symbol paths are ``<file_name>/<name>`` and
        ``<file_name>/<Class>/<member>``.
        """
        _check_text(content)
        if language_family == INDENT_BASED:
            return cls.analyze_indent_based(content, file_name)
        if language_family == BRACE_BASED:
            return cls.analyze_brace_based(content, file_name)
        raise InvalidInput("structure", f"unknown language family {language_family!r}")
