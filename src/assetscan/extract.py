"""String-literal extraction from JavaScript and TypeScript sources.

Two strategies share the ``LiteralExtractor`` interface:

* ``TypeScriptExtractor`` parses ``.ts``/``.tsx`` with the TypeScript grammars.
  Parsing is error tolerant: literals are collected from whatever tree the
  parser recovers, and syntax errors are only logged.
* ``JavaScriptExtractor`` parses everything else with the JavaScript grammar
  (JSX, decorators, class fields, dynamic import and the other modern forms).
  A file the grammar rejects is retried with ``export x from`` accepted and
  with the TSX grammar for type annotations, then rejected with ``ParseError``.

The strategy for a file is chosen by ``extractor_for`` from its extension.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Protocol

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from assetscan.errors import ParseError

logger = logging.getLogger(__name__)

_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)
_EXPORT_DEFAULT_FROM = re.compile(
    rb"(?m)^([ \t]*)export(?=\s+(?!(?:default|const|let|var|class|function|async)\b)"
    rb"[A-Za-z_$][\w$]*\s*(?:,|from\b))"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "\n": "",
    "\r": "",
    "\r\n": "",
    "\u2028": "",
    "\u2029": "",
}


class LiteralExtractor(Protocol):
    def extract(self, content: str, source_name: str = "<string>") -> list[str]:
        ...


class _TreeSitterExtractor:
    def __init__(self, language: Language) -> None:
        self._parser = Parser(language)

    def _parse(self, source: bytes, source_name: str, parser: Parser | None = None) -> Node:
        try:
            tree = (parser or self._parser).parse(source)
        except (ValueError, RuntimeError) as exc:
            raise ParseError(source_name, str(exc)) from exc
        return tree.root_node


class TypeScriptExtractor(_TreeSitterExtractor):
    def __init__(self, tsx: bool = False) -> None:
        if tsx:
            language = Language(tree_sitter_typescript.language_tsx())
        else:
            language = Language(tree_sitter_typescript.language_typescript())
        super().__init__(language)
        self.tsx = tsx

    def extract(self, content: str, source_name: str = "<string>") -> list[str]:
        source = content.encode("utf-8")
        root = self._parse(source, source_name)
        if root.has_error:
            line, column = _first_error_position(root)
            logger.warning(
                "%s: syntax error at %d:%d; using literals from the recovered tree",
                source_name,
                line,
                column,
            )

        literals: list[str] = []
        for node in _walk(root):
            if not node.is_named:
                continue
            if node.type == "string":
                literals.append(_string_value(node, source, decode_entities=False))
            elif node.type == "template_string":
                segments = _template_segments(node, source)
                if len(segments) == 1:
                    literals.append(_unescape(segments[0]))
                else:
                    literals.extend(
                        cooked for cooked in map(_unescape, segments) if cooked
                    )
        return literals


class JavaScriptExtractor(_TreeSitterExtractor):
    def __init__(self) -> None:
        super().__init__(Language(tree_sitter_javascript.language()))
        self._typed_parser = Parser(Language(tree_sitter_typescript.language_tsx()))

    def extract(self, content: str, source_name: str = "<string>") -> list[str]:
        source = content.encode("utf-8")
        root = self._parse(source, source_name)
        if root.has_error:
            source, root = self._recover(source, root, source_name)

        literals: list[str] = []
        for node in _walk(root):
            if not node.is_named:
                continue
            if node.type == "string":
                literals.append(_string_value(node, source))
            elif node.type == "template_string":
                literals.extend(_template_segments(node, source))
            elif node.type == "import_statement":
                module = node.child_by_field_name("source")
                if module is not None and module.type == "string":
                    value = _string_value(module, source)
                    if value:
                        literals.append(value)
            elif node.type == "call_expression":
                value = _dynamic_import_source(node, source)
                if value is not None:
                    literals.append(value)
        return literals

    def _recover(self, source: bytes, root: Node, source_name: str) -> tuple[bytes, Node]:
        """Re-parse a rejected file, allowing ``export x from`` and type annotations.

        ``export x from "m"`` is rewritten to ``import x from "m"``. Both
        keywords are six bytes, so node offsets and string values are kept.
        Type-annotated sources are retried with the TSX grammar.
        """
        rewritten = _EXPORT_DEFAULT_FROM.sub(rb"\1import", source)
        attempts = [(self._typed_parser, source)]
        if rewritten != source:
            attempts = [
                (self._parser, rewritten),
                (self._typed_parser, source),
                (self._typed_parser, rewritten),
            ]
        for parser, candidate in attempts:
            recovered = self._parse(candidate, source_name, parser)
            if not recovered.has_error:
                logger.debug("%s: parsed after relaxing the JavaScript grammar", source_name)
                return candidate, recovered
        line, column = _first_error_position(root)
        raise ParseError(source_name, f"Unexpected token ({line}:{column})")


def default_extractors() -> dict[str, LiteralExtractor]:
    typescript = TypeScriptExtractor()
    javascript = JavaScriptExtractor()
    return {
        ".ts": typescript,
        ".tsx": TypeScriptExtractor(tsx=True),
        ".js": javascript,
        ".jsx": javascript,
    }


def extractor_for(
    path: Path | str, extractors: Mapping[str, LiteralExtractor]
) -> LiteralExtractor:
    suffix = Path(path).suffix.lower()
    if suffix in extractors:
        return extractors[suffix]
    return extractors[".js"]


def _walk(root: Node) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _first_error_position(root: Node) -> tuple[int, int]:
    for node in _walk(root):
        if node.is_error or node.is_missing:
            row, column = node.start_point
            return row + 1, column
    return 1, 0


def _text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _string_value(node: Node, source: bytes, decode_entities: bool = True) -> str:
    parts: list[str] = []
    for child in node.children:
        if child.type == "string_fragment":
            parts.append(_text(child, source))
        elif child.type == "escape_sequence":
            parts.append(_unescape(_text(child, source)))
        elif child.type == "html_character_reference":
            text = _text(child, source)
            parts.append(html.unescape(text) if decode_entities else text)
    return "".join(parts)


def _template_segments(node: Node, source: bytes) -> list[str]:
    """Raw text of each quasi, split around the ``${...}`` substitutions."""
    # Skip the opening and closing backticks.
    start = node.start_byte + 1
    end = node.end_byte - 1
    segments: list[str] = []
    for child in node.children:
        if child.type == "template_substitution":
            segments.append(source[start : child.start_byte].decode("utf-8", errors="replace"))
            start = child.end_byte
    segments.append(source[start:max(start, end)].decode("utf-8", errors="replace"))
    return segments


def _dynamic_import_source(node: Node, source: bytes) -> str | None:
    function = node.child_by_field_name("function")
    arguments = node.child_by_field_name("arguments")
    if function is None or arguments is None or function.type != "import":
        return None
    args = [child for child in arguments.named_children if child.type != "comment"]
    if len(args) != 1 or args[0].type != "string":
        return None
    return _string_value(args[0], source)


def _unescape(raw: str) -> str:
    return _ESCAPE_RE.sub(_replace_escape, raw)


def _replace_escape(match: re.Match[str]) -> str:
    body = match.group(1)
    if body in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[body]
    if body.startswith("u{"):
        code = int(body[2:-1], 16)
        return chr(code) if code <= 0x10FFFF else match.group(0)
    if body[0] in "ux" and len(body) > 1:
        return chr(int(body[1:], 16))
    return body
