"""Heuristic multi-language import extraction.

Each supported language has an :class:`ExtractionRule` registered in
:data:`EXTRACTION_RULES`. A rule knows the comment syntax of its language,
the regular expressions that find import-like statements, and how to turn a
raw specifier into a relative path for the graph builder. Adding a language
means registering a new rule; the builder never changes.

Comments are blanked (replaced by spaces, newlines kept) before matching so
offsets and line numbers stay exact. String literals that merely look like
imports are not handled in every language; that is a known limitation of
scanning without an AST.
"""

from __future__ import annotations

import bisect
import logging
import re
from pathlib import PurePosixPath
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .config import LANGUAGE_MAP
from .errors import InvalidInput
from .models import RawReference

logger = logging.getLogger(__name__)

_QUOTED = r"""(?P<q>['"])(?P<spec>[^'"\n]+)(?P=q)"""


def detect_language(path: str) -> Optional[str]:
    """Map a file path to a language tag using its extension."""
    return LANGUAGE_MAP.get(PurePosixPath(path).suffix.lower())


def _blank(text: str) -> str:
    return re.sub(r"[^\n]", " ", text)


def _is_relative(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


# ===================================================================
# Rule base class
# ===================================================================

class ExtractionRule:
    """Import syntax and comment handling for one language."""

    language = ""
    line_comments: Tuple[str, ...] = ("//",)
    block_comments: Tuple[Tuple[str, str], ...] = (("/*", "*/"),)
    quotes: Tuple[str, ...] = ('"', "'")
    # Blank string literals too when specifiers are never written as strings
    specifiers_in_strings = True
    patterns: Tuple[Tuple[str, re.Pattern[str]], ...] = ()

    def __init__(self) -> None:
        self._scrubber = self._build_scrubber()

    def _build_scrubber(self) -> re.Pattern[str]:
        comments = [re.escape(marker) + r"[^\n]*" for marker in self.line_comments]
        comments += [
            re.escape(start) + r"[\s\S]*?(?:" + re.escape(stop) + r"|\Z)"
            for start, stop in self.block_comments
        ]
        strings = []
        for quote in self.quotes:
            q = re.escape(quote)
            if quote == "`":
                strings.append(q + r"(?:\\[\s\S]|[^`\\])*" + q + "?")
            else:
                strings.append(q + r"(?:\\.|[^" + q + r"\\\n])*" + q + "?")
        parts = []
        if comments:
            parts.append("(?P<comment>" + "|".join(comments) + ")")
        if strings:
            parts.append("(?P<string>" + "|".join(strings) + ")")
        return re.compile("|".join(parts))

    def strip_comments(self, text: str, blank_strings: bool = False) -> str:
        """Blank comments (and optionally string bodies) keeping offsets."""

        def _replace(match: "re.Match[str]") -> str:
            token = match.group(0)
            if match.group("comment") is not None:
                return _blank(token)
            if blank_strings and len(token) > 2:
                return token[0] + _blank(token[1:-1]) + token[-1]
            return token

        return self._scrubber.sub(_replace, text)

    def extract(self, content: str) -> List[RawReference]:
        cleaned = self.strip_comments(content, blank_strings=not self.specifiers_in_strings)
        line_starts = [m.end() for m in re.finditer("\n", cleaned)]
        found: List[Tuple[int, str, str]] = []
        for kind, pattern in self.patterns:
            for match in pattern.finditer(cleaned):
                for specifier, offset in self._specifiers(kind, match):
                    specifier = specifier.strip()
                    if specifier:
                        found.append((offset, specifier, kind))
        found.sort(key=lambda item: item[0])
        return [
            RawReference(specifier=spec, line=bisect.bisect_right(line_starts, offset) + 1, kind=kind)
            for offset, spec, kind in found
        ]

    def _specifiers(self, kind: str, match: "re.Match[str]") -> Iterator[Tuple[str, int]]:
        yield match.group("spec"), match.start("spec")

    def relative_path(self, reference: RawReference) -> Optional[str]:
        """Relative path form of *reference*, or None when package-style."""
        return reference.specifier if _is_relative(reference.specifier) else None


# ===================================================================
# Language rules
# ===================================================================

class JavaScriptRule(ExtractionRule):
    language = "javascript"
    quotes = ('"', "'", "`")
    patterns = (
        ("import", re.compile(
            r"(?<![\w$.])import\s+(?:type\s+)?[\w$*{}\s,]+?\s*from\s*" + _QUOTED)),
        ("import", re.compile(r"(?<![\w$.])import\s*" + _QUOTED)),
        ("dynamic-import", re.compile(
            r"(?<![\w$.])import\s*\(\s*(?P<q>['\"`])(?P<spec>[^'\"`\n]+)(?P=q)\s*\)")),
        ("require", re.compile(
            r"(?<![\w$.])require\s*\(\s*(?P<q>['\"`])(?P<spec>[^'\"`\n]+)(?P=q)\s*\)")),
        ("reexport", re.compile(
            r"(?<![\w$.])export\s+(?:type\s+)?(?:\*(?:\s+as\s+[\w$]+)?|\{[^}]*\})\s*from\s*"
            + _QUOTED)),
    )


class TypeScriptRule(JavaScriptRule):
    language = "typescript"


class PythonRule(ExtractionRule):
    language = "python"
    line_comments = ("#",)
    block_comments = (('"""', '"""'), ("'''", "'''"))
    specifiers_in_strings = False
    patterns = (
        ("import", re.compile(r"^[ \t]*import[ \t]+(?P<names>[\w. \t,]+)", re.MULTILINE)),
        ("import", re.compile(
            r"^[ \t]*from[ \t]+(?P<module>\.+[\w.]*|[\w.]+)[ \t]+import[ \t]+"
            r"(?P<names>\([^)]*\)|[^\n;]+)",
            re.MULTILINE,
        )),
    )

    def _specifiers(self, kind: str, match: "re.Match[str]") -> Iterator[Tuple[str, int]]:
        names = _split_names(match.group("names"))
        if "module" not in match.re.groupindex:
            offset = match.start("names")
            for name in names:
                yield name, offset
            return
        module = match.group("module")
        offset = match.start("module")
        if module.strip("."):
            yield module, offset
            return
        # "from . import a, b" refers to sibling modules a and b
        for name in names:
            if name != "*":
                yield module + name, offset

    def relative_path(self, reference: RawReference) -> Optional[str]:
        spec = reference.specifier
        if not spec.startswith("."):
            return None
        rest = spec.lstrip(".")
        dots = len(spec) - len(rest)
        prefix = "./" if dots == 1 else "../" * (dots - 1)
        return prefix + rest.replace(".", "/")


def _split_names(raw: str) -> List[str]:
    names = []
    for chunk in raw.strip().strip("()").split(","):
        name = chunk.strip().split()
        if name:
            names.append(name[0])
    return names


class GoRule(ExtractionRule):
    language = "go"
    quotes = ('"', "`")
    _block_item = re.compile(r'(?:[\w.]+[ \t]+)?"(?P<spec>[^"\n]+)"')
    patterns = (
        ("import", re.compile(r'^[ \t]*import[ \t]+(?:[\w.]+[ \t]+)?"(?P<spec>[^"\n]+)"', re.MULTILINE)),
        ("import", re.compile(r"^[ \t]*import[ \t]*\((?P<block>[^)]*)\)", re.MULTILINE)),
    )

    def _specifiers(self, kind: str, match: "re.Match[str]") -> Iterator[Tuple[str, int]]:
        if "block" not in match.re.groupindex:
            yield from super()._specifiers(kind, match)
            return
        base = match.start("block")
        for item in self._block_item.finditer(match.group("block")):
            yield item.group("spec"), base + item.start("spec")


class JavaRule(ExtractionRule):
    language = "java"
    specifiers_in_strings = False
    patterns = (
        ("import", re.compile(
            r"^[ \t]*import[ \t]+(?:static[ \t]+)?(?P<spec>[\w.]+(?:\.\*)?)[ \t]*;", re.MULTILINE)),
    )


class CSharpRule(ExtractionRule):
    language = "csharp"
    specifiers_in_strings = False
    patterns = (
        ("use", re.compile(
            r"^[ \t]*(?:global[ \t]+)?using[ \t]+(?:static[ \t]+)?(?:\w+[ \t]*=[ \t]*)?"
            r"(?P<spec>[\w.]+)[ \t]*;",
            re.MULTILINE,
        )),
    )


class RustRule(ExtractionRule):
    language = "rust"
    quotes = ('"',)
    specifiers_in_strings = False
    patterns = (
        ("module", re.compile(
            r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?mod[ \t]+(?P<spec>\w+)[ \t]*;", re.MULTILINE)),
        ("use", re.compile(
            r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?use[ \t]+(?P<spec>[\w:]+)", re.MULTILINE)),
        ("use", re.compile(r"^[ \t]*extern[ \t]+crate[ \t]+(?P<spec>\w+)", re.MULTILINE)),
    )

    def relative_path(self, reference: RawReference) -> Optional[str]:
        if reference.kind == "module":
            return "./" + reference.specifier
        return None


class RubyRule(ExtractionRule):
    language = "ruby"
    line_comments = ("#",)
    block_comments = (("=begin", "=end"),)
    patterns = (
        ("require-relative", re.compile(r"^[ \t]*require_relative[ \t(]+" + _QUOTED, re.MULTILINE)),
        ("require", re.compile(r"^[ \t]*(?:require|load)[ \t(]+" + _QUOTED, re.MULTILINE)),
    )

    def relative_path(self, reference: RawReference) -> Optional[str]:
        if reference.kind == "require-relative" and not _is_relative(reference.specifier):
            return "./" + reference.specifier
        return super().relative_path(reference)


class CRule(ExtractionRule):
    language = "c"
    patterns = (
        ("include", re.compile(r'^[ \t]*#[ \t]*include[ \t]*"(?P<spec>[^"\n]+)"', re.MULTILINE)),
        ("system-include", re.compile(r"^[ \t]*#[ \t]*include[ \t]*<(?P<spec>[^>\n]+)>", re.MULTILINE)),
    )

    def relative_path(self, reference: RawReference) -> Optional[str]:
        if reference.kind == "system-include":
            return None
        if _is_relative(reference.specifier):
            return reference.specifier
        return "./" + reference.specifier


class CppRule(CRule):
    language = "cpp"


class PhpRule(ExtractionRule):
    language = "php"
    line_comments = ("//", "#")
    patterns = (
        ("require", re.compile(r"(?<![\w$])(?:require|include)(?:_once)?[ \t(]*" + _QUOTED)),
        ("use", re.compile(r"^[ \t]*use[ \t]+(?P<spec>[\w\\]+)", re.MULTILINE)),
    )


EXTRACTION_RULES: Dict[str, ExtractionRule] = {}


def register_rule(rule: ExtractionRule) -> None:
    """Register (or replace) the rule for ``rule.language``."""
    EXTRACTION_RULES[rule.language] = rule


for _rule_cls in (
    JavaScriptRule, TypeScriptRule, PythonRule, GoRule, JavaRule, CSharpRule,
    RustRule, RubyRule, CRule, CppRule, PhpRule,
):
    register_rule(_rule_cls())


def supported_languages() -> List[str]:
    return sorted(EXTRACTION_RULES)


def get_rule(language: Optional[str]) -> Optional[ExtractionRule]:
    if not language:
        return None
    return EXTRACTION_RULES.get(language.lower())


# ===================================================================
# Public API
# ===================================================================

def extract_references(
    path: str,
    language: Optional[str],
    content: str,
) -> List[RawReference]:
    """Return the raw references of one file, in source order.

    Unsupported languages yield an empty list. When *language* is omitted
    it is detected from the file extension.
    """
    if not isinstance(path, str) or not path:
        raise InvalidInput("File path is required")
    if not isinstance(content, str):
        raise InvalidInput(f"Content for '{path}' must be text")
    rule = get_rule(language or detect_language(path))
    if rule is None:
        return []
    return rule.extract(content)


def strip_comments(text: str, language: Optional[str], blank_strings: bool = False) -> str:
    """Blank comments of *language* in *text*; unknown languages pass through."""
    rule = get_rule(language)
    if rule is None:
        return text
    return rule.strip_comments(text, blank_strings=blank_strings)


def relative_specifiers(
    language: Optional[str],
    references: Iterable[RawReference],
) -> List[Tuple[RawReference, Optional[str]]]:
    """Pair every reference with its relative path form (None = external)."""
    rule = get_rule(language)
    if rule is None:
        return [(ref, ref.specifier if _is_relative(ref.specifier) else None) for ref in references]
    return [(ref, rule.relative_path(ref)) for ref in references]
