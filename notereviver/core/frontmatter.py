"""Front-matter parsing for exported note documents.

Only two keys are recognized, ``title`` and ``aliases``. The block is
scanned line by line rather than handed to a YAML parser so that loosely
formatted exports (unquoted colons, stray indentation) still parse.
"""

import re
from typing import Optional

from .models import ParsedPage

DELIMITER_PATTERN = re.compile(r"^\s*---\s*$")
KEY_PATTERN = re.compile(r"^\s*([A-Za-z0-9_][\w.-]*)\s*:(.*)$")
LIST_ITEM_PATTERN = re.compile(r"^\s*-(?:\s+(.*)|\s*)$")
CODE_FENCE_PATTERN = re.compile(r"```[^\n]*\n(.*?)(?:\r?\n)?```", re.DOTALL)

NULL_VALUES = {"", "null", "~"}


def strip_quotes(value: str) -> str:
    """Strip whitespace and one pair of matching surrounding quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _split_block(text: str) -> Optional[tuple[list[str], str]]:
    """Return (metadata lines, remaining text) or None if no block opens the text."""
    lines = text.splitlines(keepends=True)
    if not lines or not DELIMITER_PATTERN.match(lines[0]):
        return None

    for index in range(1, len(lines)):
        if DELIMITER_PATTERN.match(lines[index]):
            block = [line.rstrip("\r\n") for line in lines[1:index]]
            rest = "".join(lines[index + 1 :])
            return block, rest

    # Opening delimiter without a closing one is ordinary text
    return None


def _parse_inline_aliases(value: str) -> list[str]:
    """Parse the value written on the same line as ``aliases:``."""
    value = value.strip()
    if value.lower() in NULL_VALUES or value == "[]":
        return []

    if value.startswith("[") and value.endswith("]"):
        items = [strip_quotes(item) for item in value[1:-1].split(",")]
        return [item for item in items if item]

    value = strip_quotes(value)
    return [value] if value else []


def parse_front_matter(text: str) -> ParsedPage:
    """Split a document into its front-matter fields and body.

    Args:
        text: Raw document text

    Returns:
        ParsedPage; when no delimited block opens the text the body is the
        unchanged input and title/aliases are None.
    """
    split = _split_block(text)
    if split is None:
        return ParsedPage(has_front_matter=False, body=text)

    block, rest = split

    title: Optional[str] = None
    aliases: list[str] = []
    saw_aliases = False

    in_list = False
    inline: list[str] = []
    listed: list[str] = []

    def close_aliases_key():
        # List entries replace an inline value given on the same key line
        aliases.extend(listed if listed else inline)

    for line in block:
        key_match = KEY_PATTERN.match(line)

        if in_list and not key_match:
            item_match = LIST_ITEM_PATTERN.match(line)
            if item_match:
                item = strip_quotes(item_match.group(1) or "")
                if item:
                    listed.append(item)
            continue

        if not key_match:
            continue

        if in_list:
            close_aliases_key()
            in_list = False

        key = key_match.group(1).lower()
        value = key_match.group(2)

        if key == "title":
            candidate = strip_quotes(value)
            title = None if candidate.lower() in NULL_VALUES else candidate
        elif key == "aliases":
            saw_aliases = True
            in_list = True
            inline = _parse_inline_aliases(value)
            listed = []

    if in_list:
        close_aliases_key()

    return ParsedPage(
        has_front_matter=True,
        title=title,
        aliases=aliases if (saw_aliases and aliases) else None,
        body=rest.lstrip(),
    )


def extract_code_block(body: str) -> Optional[str]:
    """Return the content of the first triple-backtick fence in body, if any.

    The info string after the opening fence (e.g. a language name) is not
    part of the content.
    """
    match = CODE_FENCE_PATTERN.search(body)
    if match is None:
        return None
    return match.group(1)
