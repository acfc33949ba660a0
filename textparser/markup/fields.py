"""Loose tagged field extraction and field set merging."""

from collections.abc import Iterable, Mapping

from textparser.markup.scanner import scan_tags
from textparser.parsing.schema import XmlBlock


def strip_blocks(text: str, blocks: Iterable[XmlBlock]) -> str:
    """Remove the source of every block from the text."""
    pieces: list[str] = []
    cursor = 0
    for start, end in sorted(block.span for block in blocks):
        if start > cursor:
            pieces.append(text[cursor:start])
        cursor = max(cursor, end)
    pieces.append(text[cursor:])
    return "".join(pieces)


def extract_loose_fields(text: str) -> dict[str, str]:
    """Extract ``<name>value</name>`` pairs from text.

    A pair is an open tag directly followed by a close tag of the same name
    (case-insensitive) with non-empty text in between that contains no ``<``.
    Values are trimmed. When a name repeats, the last occurrence wins.

    Args:
        text: Message text with XML blocks already removed

    Returns:
        Mapping of tag name (case of the opening tag) to value
    """
    fields: dict[str, str] = {}
    events = list(scan_tags(text))

    for current, following in zip(events, events[1:]):
        if current.closing or not following.closing or current.key != following.key:
            continue
        value = text[current.end : following.start]
        if not value or "<" in value:
            continue
        fields[current.name] = value.strip()

    return fields


def merge_fields(blocks: Iterable[XmlBlock], loose_fields: Mapping[str, str]) -> dict[str, str]:
    """Merge block fields and loose fields into one field set.

    Block fields are added first, in block order, then loose fields. A name
    already present is never overwritten, so blocks take precedence.
    """
    merged: dict[str, str] = {}
    for block in blocks:
        for name, value in block.fields.items():
            merged.setdefault(name, value)
    for name, value in loose_fields.items():
        merged.setdefault(name, value)
    return merged
