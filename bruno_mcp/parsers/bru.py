"""
Parser for Bruno markup (.bru) request and environment files.

Bruno stores every request as a block-structured text file:

    meta {
      name: Get Users
      type: http
      seq: 1
    }

    get {
      url: {{baseUrl}}/users
      auth: bearer
    }

    headers {
      Accept: application/json
    }

    body:json {
      {
        "page": 1
      }
    }

    tests {
      test("returns 200", function() {
        expect(res.status).to.equal(200);
      });
    }

This is not a grammar. Blocks are located by their opener and end at the
first line holding a lone closing brace in column 0, which is how Bruno
writes them. The ``tests`` block is matched by brace depth instead, so the
function bodies inside it never end the block early.

Parsing never raises on malformed content; anything not found keeps its
default. Only reading the file can fail.
"""

import re
from typing import Dict, Optional

from ..models import RequestBody, RequestDetails, RequestMetadata

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "head", "options")

BODY_TYPES = (
    "json", "text", "xml", "formUrlEncoded", "multipartForm",
    "graphql", "sparql", "none",
)

_METHOD_BLOCK = re.compile(
    r"^(" + "|".join(HTTP_METHODS) + r")\s*\{(.*?)\n\}",
    re.MULTILINE | re.DOTALL | re.IGNORECASE,
)
_BODY_BLOCK = re.compile(
    r"^body:(" + "|".join(BODY_TYPES) + r")\s*\{(.*?)\n\}",
    re.MULTILINE | re.DOTALL,
)
_TESTS_OPENER = re.compile(r"^tests\s*\{", re.MULTILINE)
_TEST_CALL = re.compile(r"""test\s*\(\s*["']([^"']+)["']""")
_VAR_LINE = re.compile(r"^[ \t]*([a-zA-Z_][a-zA-Z0-9_]*)[ \t]*:[ \t]*(.+?)[ \t]*$", re.MULTILINE)
_BASIC_METHOD_LINE = re.compile(r"^(" + "|".join(HTTP_METHODS) + r")\s*\{", re.IGNORECASE)


def _block(content: str, name: str) -> Optional[str]:
    """Return the inner text of the first ``name { ... }`` block, or None."""
    match = re.search(
        rf"^{re.escape(name)}\s*\{{(.*?)\n\}}",
        content,
        re.MULTILINE | re.DOTALL,
    )
    return match.group(1) if match else None


def _field(block: str, key: str) -> Optional[str]:
    """Extract ``key: value`` from a block body."""
    match = re.search(rf"^[ \t]*{re.escape(key)}:[ \t]*(.+)$", block, re.MULTILINE)
    if match:
        value = match.group(1).strip()
        return value or None
    return None


def _key_values(block: str) -> Dict[str, str]:
    """Split every ``key: value`` line of a block on its first colon."""
    pairs: Dict[str, str] = {}
    for line in block.split("\n"):
        if not line.strip():
            continue
        colon = line.find(":")
        if colon > 0:
            key = line[:colon].strip()
            if key:
                pairs[key] = line[colon + 1:].strip()
    return pairs


def _tests_block(content: str) -> Optional[str]:
    """Return the inner text of the tests block, allowing nested braces."""
    opener = _TESTS_OPENER.search(content)
    if not opener:
        return None

    start = opener.end()
    depth = 1
    quote = None
    i = start
    while i < len(content):
        ch = content[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            # Only template literals may span lines
            if ch == quote or (ch == "\n" and quote != "`"):
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return content[start:i]
        i += 1

    # Unterminated block: take the rest of the file
    return content[start:]


def _normalize(text: str) -> str:
    return text.replace("\r\n", "\n")


class BruFileParser:
    """Extract structured fields from .bru text."""

    def parse_request(self, text: str, name: str = "") -> RequestDetails:
        """Parse a request file into RequestDetails.

        Args:
            text: Raw .bru content
            name: Default request name, replaced by ``meta.name`` when present

        Returns:
            RequestDetails with defaults for every field that was not found
        """
        content = _normalize(text)
        details = RequestDetails(name=name, metadata=RequestMetadata())

        meta = _block(content, "meta")
        if meta is not None:
            meta_name = _field(meta, "name")
            if meta_name:
                details.name = meta_name
            meta_type = _field(meta, "type")
            if meta_type:
                details.metadata.type = meta_type
            details.metadata.seq = _parse_int(_field(meta, "seq"))

        # First method block in the file wins
        method_match = _METHOD_BLOCK.search(content)
        if method_match:
            details.method = method_match.group(1).upper()
            method_block = method_match.group(2)
            details.url = _field(method_block, "url") or ""
            details.auth = _field(method_block, "auth") or "none"

        headers = _block(content, "headers")
        if headers is not None:
            details.headers = _key_values(headers)

        body_match = _BODY_BLOCK.search(content)
        if body_match:
            details.body = RequestBody(
                type=body_match.group(1),
                content=body_match.group(2).strip(),
            )

        tests = _tests_block(content)
        if tests is not None:
            details.tests = _TEST_CALL.findall(tests)

        return details

    def parse_environment_variables(self, text: str) -> Dict[str, str]:
        """Parse the ``vars { ... }`` block of an environment file."""
        block = _block(_normalize(text), "vars")
        if block is None:
            return {}
        return {key: value for key, value in _VAR_LINE.findall(block)}

    def parse_basic_info(self, text: str) -> Dict[str, str]:
        """Cheap pass used while listing requests.

        Reads ``meta.name``, the first method keyword and the ``url`` line
        within the next four lines after it.

        Returns:
            Dict with any of 'name', 'method', 'url'
        """
        info: Dict[str, str] = {}
        lines = _normalize(text).split("\n")
        in_meta = False

        for index, line in enumerate(lines):
            stripped = line.strip()
            if stripped == "meta {":
                in_meta = True
                continue
            if in_meta:
                if stripped == "}":
                    in_meta = False
                    continue
                name_match = re.match(r"^\s*name:\s*(.+)", line)
                if name_match and name_match.group(1).strip():
                    info["name"] = name_match.group(1).strip()
                continue

            if "method" not in info:
                method_match = _BASIC_METHOD_LINE.match(line)
                if method_match:
                    info["method"] = method_match.group(1).upper()
                    for follow in lines[index + 1:index + 5]:
                        url_match = re.match(r"^\s*url:\s*(.+)", follow)
                        if url_match:
                            info["url"] = url_match.group(1).strip()
                            break

        return info


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


_default_parser = BruFileParser()


def parse_request(text: str, name: str = "") -> RequestDetails:
    """Parse .bru request text with the shared parser."""
    return _default_parser.parse_request(text, name=name)


def parse_environment_variables(text: str) -> Dict[str, str]:
    """Parse the vars block of .bru environment text."""
    return _default_parser.parse_environment_variables(text)


def parse_basic_info(text: str) -> Dict[str, str]:
    """Quick name/method/url extraction from .bru request text."""
    return _default_parser.parse_basic_info(text)
