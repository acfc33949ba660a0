"""Tag scanner for semi-structured text.

Produces the lexical sequence of simple ``<name>`` / ``</name>`` tags found in
free text and checks that they balance. Only bare tags are recognised: names
are ASCII letters, digits and underscores, with no attributes. Anything else
(``<br/>``, ``a < b``, ``<a href=...>``) is treated as plain text.
"""

import re
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass

TAG_PATTERN = re.compile(r"<(/?)(\w+)>", re.ASCII)


@dataclass(frozen=True)
class TagEvent:
    """A single open or close tag occurrence.

    Attributes:
        name: Tag name with its original case
        closing: True for ``</name>``, False for ``<name>``
        start: Offset of ``<`` in the source text
        end: Offset just past ``>`` in the source text
    """

    name: str
    closing: bool
    start: int
    end: int

    @property
    def key(self) -> str:
        """Case-insensitive name used for matching opens and closes."""
        return self.name.lower()


def scan_tags(text: str) -> Iterator[TagEvent]:
    """Yield tag events in the order they occur in the text."""
    for match in TAG_PATTERN.finditer(text):
        yield TagEvent(
            name=match.group(2),
            closing=bool(match.group(1)),
            start=match.start(),
            end=match.end(),
        )


def find_unclosed_tags(text: str) -> list[str]:
    """Find tags that are not closed in stack order.

    Opens are pushed and a close pops the stack when it matches the top.
    A close that skips over open tags reports every skipped tag; a close with
    no open counterpart at all reports itself. Whatever remains open at the
    end of the text is reported too.

    Runs in linear time: a close is only searched for down the stack when an
    open tag of that name is known to be on it, and everything above the
    match is popped.

    Args:
        text: Full message text

    Returns:
        Distinct faulting tag names (compared case-insensitively), in the
        order the faults were found
    """
    faults: dict[str, str] = {}
    stack: list[TagEvent] = []
    open_counts: Counter[str] = Counter()

    def report(event: TagEvent) -> None:
        faults.setdefault(event.key, event.name)

    for event in scan_tags(text):
        if not event.closing:
            stack.append(event)
            open_counts[event.key] += 1
            continue

        if not open_counts[event.key]:
            report(event)
            continue

        while stack[-1].key != event.key:
            skipped = stack.pop()
            open_counts[skipped.key] -= 1
            report(skipped)
        stack.pop()
        open_counts[event.key] -= 1

    for leftover in stack:
        report(leftover)

    return list(faults.values())
