"""XML block extraction.

A block is a top-level XML island embedded in free text whose root element
has at least one child element carrying text, e.g.::

    <expense><cost_centre>DEV632</cost_centre><total>35,000</total></expense>

An element holding only text (``<vendor>Seaside Steakhouse</vendor>``) is not a
block; it is picked up later as a loose field.
"""

import logging
import xml.etree.ElementTree as ET
from bisect import bisect_right
from collections import defaultdict
from dataclasses import dataclass, field

from textparser.markup.scanner import TagEvent, scan_tags
from textparser.parsing.schema import XmlBlock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockCandidate:
    """A ``<name>...</name>`` span that may turn out to be a block.

    Attributes:
        tag_name: Name of the opening tag
        start: Offset of the opening tag
        end: Offset just past the matching closing tag
        top_level: False when the span sits inside another open element
    """

    tag_name: str
    start: int
    end: int
    top_level: bool


def find_block_candidates(text: str) -> list[BlockCandidate]:
    """Pair every open tag with the nearest following close of the same name.

    Names are matched case-insensitively. A candidate is top-level when the
    open tags seen before it are all closed by then.

    Args:
        text: Full message text

    Returns:
        Candidates ordered by their start offset
    """
    events = list(scan_tags(text))
    closes: dict[str, list[int]] = defaultdict(list)
    for index, event in enumerate(events):
        if event.closing:
            closes[event.key].append(index)

    candidates: list[BlockCandidate] = []
    opens_before = 0
    closes_before = 0

    for index, event in enumerate(events):
        if event.closing:
            closes_before += 1
            continue

        closing = _nearest_close(events, closes[event.key], index)
        if closing is not None:
            candidates.append(
                BlockCandidate(
                    tag_name=event.name,
                    start=event.start,
                    end=closing.end,
                    top_level=opens_before <= closes_before,
                )
            )
        opens_before += 1

    return candidates


def _nearest_close(
    events: list[TagEvent], close_indexes: list[int], open_index: int
) -> TagEvent | None:
    position = bisect_right(close_indexes, open_index)
    if position == len(close_indexes):
        return None
    return events[close_indexes[position]]


def _parse_fragment(source: str) -> ET.Element | None:
    try:
        return ET.fromstring(source)
    except ET.ParseError as e:
        logger.debug(f"Candidate is not well-formed XML: {e}")
        return None


def _leaf_fields(root: ET.Element) -> dict[str, str]:
    fields: dict[str, str] = {}
    for child in root:
        if len(child) or child.text is None:
            continue
        value = child.text.strip()
        if value:
            fields[child.tag] = value
    return fields


@dataclass(frozen=True)
class BlockScan:
    """Top-level candidates of a message split into accepted and malformed.

    Attributes:
        blocks: Accepted blocks in document order, with non-overlapping spans
        malformed: Root names of top-level candidates that are not valid XML
    """

    blocks: list[XmlBlock] = field(default_factory=list)
    malformed: list[str] = field(default_factory=list)


def scan_blocks(text: str) -> BlockScan:
    """Parse every top-level candidate of a message once.

    Args:
        text: Full message text

    Returns:
        BlockScan with the accepted blocks and the malformed candidate names
    """
    scan = BlockScan()

    for candidate in find_block_candidates(text):
        if not candidate.top_level:
            continue

        source = text[candidate.start : candidate.end]
        root = _parse_fragment(source)
        if root is None:
            scan.malformed.append(candidate.tag_name)
            continue

        fields = _leaf_fields(root)
        if not fields:
            continue

        scan.blocks.append(
            XmlBlock(
                tag_name=candidate.tag_name,
                fields=fields,
                raw_xml=source,
                span=(candidate.start, candidate.end),
            )
        )

    logger.debug(
        f"Extracted {len(scan.blocks)} XML block(s), {len(scan.malformed)} malformed"
    )
    return scan


def find_malformed_blocks(text: str) -> list[str]:
    """Return the root names of top-level candidates that are not valid XML."""
    return scan_blocks(text).malformed


def extract_blocks(text: str) -> list[XmlBlock]:
    """Extract the top-level XML blocks of a message.

    Malformed candidates are skipped here; they are reported separately by
    find_malformed_blocks() during the structural check.
    """
    return scan_blocks(text).blocks
