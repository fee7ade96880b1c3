"""
named.conf parser

Reads the block-structured BIND configuration language into a tree of
ConfigElement nodes. Comments are kept (leading comment lines and one trailing
comment per statement) and ``include`` directives are resolved and inlined.
C-style ``/* ... */`` comments are not recognised.
"""

import os
import re
from typing import List, Optional, Sequence, Tuple

from ..core.exceptions import (
    ConfigIOError,
    IncludeDepthExceeded,
    IncludeIOError,
    ParseError,
    UnterminatedBlock,
)
from ..core.logging_config import get_namedconf_logger
from .elements import ConfigElement

logger = get_namedconf_logger()

# identifier, optional qualifiers, optional "label", optional class, then "{"
BLOCK_START_RE = re.compile(
    r'^([A-Za-z0-9_\-]+(?:\s+[A-Za-z0-9_.:/\-]+)*?)'
    r'(?:\s+"([^"]*)")?'
    r'(?:\s+IN)?'
    r'\s*\{',
    re.IGNORECASE
)
INCLUDE_KEYWORD_RE = re.compile(r'^include(?:\s|"|$)')
INCLUDE_RE = re.compile(r'^include\s+"([^"]+)"\s*;$')

BLOCK_END_LINES = ("}", "};")


def split_trailing_comment(line: str) -> Tuple[str, str]:
    """
    Split a line on its first unquoted ``//`` or ``#``.

    Returns (statement, comment), both stripped. Quote state is tracked for
    single and double quotes and a backslash escapes the next character.
    """
    in_single = False
    in_double = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == "\\":
            i += 2
            continue
        if char == '"' and not in_single:
            in_double = not in_double
        elif char == "'" and not in_double:
            in_single = not in_single
        elif not in_single and not in_double:
            if char == "#":
                return line[:i].strip(), line[i + 1:].strip()
            if line.startswith("//", i):
                return line[:i].strip(), line[i + 2:].strip()
        i += 1
    return line.strip(), ""


def count_unquoted_braces(line: str) -> Tuple[int, int]:
    """Count ``{`` and ``}`` outside of quoted strings"""
    opened = closed = 0
    in_single = False
    in_double = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == "\\":
            i += 2
            continue
        if char == '"' and not in_single:
            in_double = not in_double
        elif char == "'" and not in_double:
            in_single = not in_single
        elif not in_single and not in_double:
            if char == "{":
                opened += 1
            elif char == "}":
                closed += 1
        i += 1
    return opened, closed


def split_statements(text: str) -> List[str]:
    """Split on ``;`` outside quotes and braces, keeping each terminator"""
    parts = []
    depth = 0
    in_quote = False
    start = 0
    for i, char in enumerate(text):
        if char == '"':
            in_quote = not in_quote
        elif in_quote:
            continue
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == ";" and depth == 0:
            part = text[start:i + 1].strip()
            if part != ";":
                parts.append(part)
            start = i + 1
    rest = text[start:].strip()
    if rest:
        parts.append(rest)
    return parts


def _comment_text(line: str) -> str:
    if line.startswith("//"):
        return line[2:].strip()
    return line[1:].strip()


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'" and value[0] not in value[1:-1]:
        return value[1:-1]
    return value


class NamedConfParser:
    """Parser for named.conf style files"""

    def __init__(self, file_path: Optional[str] = None, max_include_depth: Optional[int] = None):
        self.file_path = os.path.abspath(file_path) if file_path else None
        self.max_include_depth = max_include_depth

    def parse(self) -> ConfigElement:
        """Read and parse the configured file"""
        if not self.file_path:
            raise ConfigIOError("No file path given to the parser")
        try:
            with open(self.file_path, encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigIOError(
                f"Failed to read {self.file_path}: {e}",
                details={"path": self.file_path}
            ) from e

        logger.debug(f"Parsing {self.file_path}")
        return self.parse_content(content, self.file_path)

    def parse_content(self, content: str, path: Optional[str] = None, depth: int = 0) -> ConfigElement:
        """
        Parse configuration text.

        ``path`` is the file the text came from; relative includes resolve
        against its directory (the working directory when no path is given).
        """
        lines = content.split("\n")
        children, _ = self._parse_elements(lines, 0, path, depth)
        return ConfigElement.root(children)

    def _parse_elements(
        self,
        lines: List[str],
        index: int,
        path: Optional[str],
        depth: int,
        block_line: Optional[int] = None
    ) -> Tuple[List[ConfigElement], int]:
        """Parse statements until the end of input or the close of the enclosing block"""
        children: List[ConfigElement] = []
        comments: List[str] = []

        while index < len(lines):
            line_number = index + 1
            line = lines[index].strip()
            index += 1

            if not line:
                continue

            if line.startswith("//") or line.startswith("#"):
                comments.append(_comment_text(line))
                continue

            statement, trailing = split_trailing_comment(line)
            if not statement:
                continue

            if statement in BLOCK_END_LINES:
                if block_line is None:
                    raise ParseError("Closing brace without an open block", line_number, path,
                                     cause="unbalanced-brace")
                return children, index

            opened, closed = count_unquoted_braces(statement)

            # zone "x" { type master; }; written on one line at file level
            if opened and opened == closed and block_line is None:
                match = BLOCK_START_RE.match(statement)
                if match:
                    children.append(self._parse_inline_block(
                        statement, match, trailing, comments, line_number, path, depth
                    ))
                    comments = []
                    continue

            # "allow-query { any; };" stays a single statement
            if opened and opened == closed:
                children.append(self._parse_simple(statement, trailing, comments, line_number, path))
                comments = []
                continue

            # "192.168.0.0/16; };" ends the list and the enclosing block
            if block_line is not None and closed == opened + 1:
                body = statement[:-1].rstrip() if statement.endswith(";") else statement
                if body.endswith("}"):
                    children.extend(self._parse_statement_list(
                        body[:-1], line_number, path, depth, comments, trailing
                    ))
                    return children, index

            if INCLUDE_KEYWORD_RE.match(statement):
                children.append(self._parse_include(statement, trailing, comments, line_number, path, depth))
                comments = []
                continue

            match = BLOCK_START_RE.match(statement)
            if match and opened == 1 and closed == 0:
                # acl trusted { 10.0.0.0/8;  with the list continuing below
                first = self._parse_statement_list(statement[match.end():], line_number, path, depth)
                nested, index = self._parse_elements(lines, index, path, depth, block_line=line_number)
                children.append(ConfigElement.block(
                    name=" ".join(match.group(1).split()),
                    value=match.group(2) or "",
                    children=first + nested,
                    leading_comments=comments,
                    trailing_comment=trailing,
                ))
                comments = []
                continue

            if opened or closed:
                raise ParseError(f"Unbalanced braces in '{statement}'", line_number, path,
                                 cause="unbalanced-brace")

            children.append(self._parse_simple(statement, trailing, comments, line_number, path))
            comments = []

        if block_line is not None:
            raise UnterminatedBlock("Block is never closed", block_line, path)

        if comments:
            logger.debug(f"Dropping {len(comments)} trailing comment line(s) in {path or '<content>'}")
        return children, index

    def _parse_include(
        self,
        statement: str,
        trailing: str,
        comments: List[str],
        line_number: int,
        path: Optional[str],
        depth: int
    ) -> ConfigElement:
        match = INCLUDE_RE.match(statement)
        if not match:
            raise ParseError(f"Invalid include directive '{statement}'", line_number, path,
                             cause="invalid-include")

        include_path = match.group(1)
        if not os.path.isabs(include_path):
            base_dir = os.path.dirname(path) if path else os.getcwd()
            include_path = os.path.join(base_dir, include_path)
        include_path = os.path.abspath(include_path)

        if self.max_include_depth is not None and depth + 1 > self.max_include_depth:
            raise IncludeDepthExceeded(
                f"Include of {include_path} exceeds the maximum depth of {self.max_include_depth}",
                line_number, path
            )

        try:
            with open(include_path, encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise IncludeIOError(include_path, line_number, path, reason=str(e)) from e

        logger.debug(f"Inlining {include_path} (depth {depth + 1})")
        included = self.parse_content(content, include_path, depth + 1)

        return ConfigElement.include(
            path=include_path,
            children=included.children,
            leading_comments=comments,
            trailing_comment=trailing,
        )

    def _parse_inline_block(
        self,
        statement: str,
        match: re.Match,
        trailing: str,
        comments: List[str],
        line_number: int,
        path: Optional[str],
        depth: int
    ) -> ConfigElement:
        body = statement[match.end():].rstrip()
        if body.endswith(";"):
            body = body[:-1].rstrip()
        if not body.endswith("}"):
            raise ParseError("Unexpected content after '}'", line_number, path, cause="content-after-brace")
        return ConfigElement.block(
            name=" ".join(match.group(1).split()),
            value=match.group(2) or "",
            children=self._parse_statement_list(body[:-1], line_number, path, depth),
            leading_comments=comments,
            trailing_comment=trailing,
        )

    def _parse_statement_list(
        self,
        text: str,
        line_number: int,
        path: Optional[str],
        depth: int,
        comments: Sequence[str] = (),
        trailing: str = ""
    ) -> List[ConfigElement]:
        """Parse several statements sharing one line; comments go to the first, the trailing one to the last"""
        parts = split_statements(text)
        elements = []
        for i, part in enumerate(parts):
            part_comments = list(comments) if i == 0 else []
            part_trailing = trailing if i == len(parts) - 1 else ""
            opened, closed = count_unquoted_braces(part)
            if INCLUDE_KEYWORD_RE.match(part):
                elements.append(self._parse_include(part, part_trailing, part_comments, line_number, path, depth))
            elif opened != closed:
                raise ParseError(f"Unbalanced braces in '{part}'", line_number, path, cause="unbalanced-brace")
            else:
                elements.append(self._parse_simple(part, part_trailing, part_comments, line_number, path))
        return elements

    def _parse_simple(
        self,
        statement: str,
        trailing: str,
        comments: List[str],
        line_number: int,
        path: Optional[str]
    ) -> ConfigElement:
        if statement.endswith(";"):
            statement = statement[:-1].rstrip()

        parts = statement.split(None, 1)
        if not parts:
            raise ParseError("Empty statement", line_number, path, cause="empty-statement")

        value = _unquote(parts[1].strip()) if len(parts) > 1 else ""
        return ConfigElement.simple(parts[0], value, comments, trailing)
