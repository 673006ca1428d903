"""Tests for the heuristic multi-language import extractor."""

import re

import pytest

from codelayers.errors import InvalidInput
from codelayers.extractor import (
    EXTRACTION_RULES,
    ExtractionRule,
    detect_language,
    extract_references,
    register_rule,
    relative_specifiers,
    strip_comments,
    supported_languages,
)

JS_SOURCE = """import a from './a';
import * as b from "../b";
import './side-effect';
const c = require('./c');
const d = await import('./d');
export { e } from './e';
export * from 'pkg';
// import x from './commented';
/* require('./block') */
"""

PY_SOURCE = '''import os, sys
from . import sibling
from .pkg.mod import thing
from ..parent import other
# import ghost
"""
import inside_docstring
"""
from typing import (
    List,
    Dict,
)
'''


def _specs(path, language, content):
    return [ref.specifier for ref in extract_references(path, language, content)]


def test_javascript_import_forms():
    refs = extract_references("src/app.js", "javascript", JS_SOURCE)

    assert [r.specifier for r in refs] == ["./a", "../b", "./side-effect", "./c", "./d", "./e", "pkg"]
    assert [r.line for r in refs] == [1, 2, 3, 4, 5, 6, 7]
    assert [r.kind for r in refs] == [
        "import", "import", "import", "require", "dynamic-import", "reexport", "reexport",
    ]


def test_typescript_uses_javascript_syntax():
    content = "import type { Props } from './types';\nimport React from 'react';\n"
    assert _specs("a.tsx", "typescript", content) == ["./types", "react"]


def test_python_imports_and_relative_paths():
    refs = extract_references("pkg/main.py", "python", PY_SOURCE)

    assert [r.specifier for r in refs] == ["os", "sys", ".sibling", ".pkg.mod", "..parent", "typing"]
    assert refs[0].line == 1
    assert refs[-1].line == 9

    relative = dict((ref.specifier, path) for ref, path in relative_specifiers("python", refs))
    assert relative == {
        "os": None,
        "sys": None,
        ".sibling": "./sibling",
        ".pkg.mod": "./pkg/mod",
        "..parent": "../parent",
        "typing": None,
    }


def test_go_single_and_block_imports():
    content = 'package main\n\nimport "fmt"\nimport (\n    "os"\n    str "strings"\n    "example.com/app/internal"\n)\n'
    refs = extract_references("main.go", "go", content)

    assert [r.specifier for r in refs] == ["fmt", "os", "strings", "example.com/app/internal"]
    assert all(path is None for _, path in relative_specifiers("go", refs))


def test_rust_modules_are_relative():
    content = "mod parser;\npub mod lexer;\nuse std::collections::HashMap;\nextern crate serde;\n"
    refs = extract_references("src/main.rs", "rust", content)

    assert [(r.specifier, r.kind) for r in refs] == [
        ("parser", "module"),
        ("lexer", "module"),
        ("std::collections::HashMap", "use"),
        ("serde", "use"),
    ]
    assert [path for _, path in relative_specifiers("rust", refs)] == ["./parser", "./lexer", None, None]


def test_c_quoted_and_system_includes():
    refs = extract_references("main.c", "c", '#include "util.h"\n#include <stdio.h>\n')

    assert [(r.specifier, r.kind) for r in refs] == [("util.h", "include"), ("stdio.h", "system-include")]
    assert [path for _, path in relative_specifiers("c", refs)] == ["./util.h", None]


def test_ruby_require_relative():
    refs = extract_references("app.rb", "ruby", "require_relative 'lib/helper'\nrequire 'json'\n")

    assert [r.kind for r in refs] == ["require-relative", "require"]
    assert [path for _, path in relative_specifiers("ruby", refs)] == ["./lib/helper", None]


def test_java_csharp_php():
    assert _specs("A.java", "java", "import java.util.List;\nimport static org.junit.Assert.*;\n") == [
        "java.util.List",
        "org.junit.Assert.*",
    ]
    assert _specs("A.cs", "csharp", "using System.Text;\nusing Json = Newtonsoft.Json;\n") == [
        "System.Text",
        "Newtonsoft.Json",
    ]
    assert _specs("index.php", "php", "<?php\nrequire_once 'lib/db.php';\nuse App\\Models\\User;\n") == [
        "lib/db.php",
        "App\\Models\\User",
    ]


def test_language_detected_from_extension():
    assert detect_language("src/App.TSX") == "typescript"
    assert detect_language("README.md") is None
    assert _specs("src/app.js", None, "import x from './x';") == ["./x"]


def test_unsupported_language_yields_nothing():
    assert extract_references("notes.txt", None, "import x from './x';") == []
    assert extract_references("main.kt", "kotlin", "import foo.bar") == []


def test_invalid_input():
    with pytest.raises(InvalidInput):
        extract_references("", "javascript", "")
    with pytest.raises(InvalidInput):
        extract_references("a.js", "javascript", None)


def test_strip_comments_keeps_offsets():
    text = "a // b\nc /* d\ne */ f"
    stripped = strip_comments(text, "javascript")

    assert len(stripped) == len(text)
    assert stripped.count("\n") == text.count("\n")
    assert "b" not in stripped and "d" not in stripped
    assert stripped.endswith(" f")


def test_strip_comments_can_blank_strings():
    stripped = strip_comments("x = 'if (a && b)'", "javascript", blank_strings=True)
    assert "if" not in stripped
    assert stripped.startswith("x = '")


def test_register_custom_rule():
    class ToyRule(ExtractionRule):
        language = "toy"
        patterns = (("import", re.compile(r"^use (?P<spec>\S+)", re.MULTILINE)),)

    register_rule(ToyRule())
    try:
        assert "toy" in supported_languages()
        assert _specs("a.toy", "toy", "use ./b\nuse c\n") == ["./b", "c"]
    finally:
        EXTRACTION_RULES.pop("toy")
