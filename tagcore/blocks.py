"""
tagcore/blocks.py

Marker-delimited blocks embedded in free text, e.g.::

    Seaside hotel, family run.

    [[HOTEL_SETTINGS_JSON]]
    {...}
    [[/HOTEL_SETTINGS_JSON]]

Legacy formats are expressed as an ordered tuple of BlockMarkers; the first
marker pair that matches wins.
"""
from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class BlockMatch:
    """A located block: positions cover the markers themselves."""
    markers: "BlockMarkers"
    start: int
    end: int
    inner: str

    def splice_out(self, text: str) -> str:
        """Return text with the block removed."""
        return text[:self.start] + text[self.end:]


@dataclass(frozen=True)
class BlockMarkers:
    name: str
    start: str
    end: str

    def match(self, text: str) -> Optional[BlockMatch]:
        """Find the first start marker and the first end marker after it."""
        begin = text.find(self.start)
        if begin < 0:
            return None
        inner_start = begin + len(self.start)
        finish = text.find(self.end, inner_start)
        if finish < 0:
            return None
        return BlockMatch(
            markers=self,
            start=begin,
            end=finish + len(self.end),
            inner=text[inner_start:finish],
        )

    def wrap(self, body: str) -> str:
        return f"{self.start}\n{body}\n{self.end}"


def find_first_block(text: str, formats: Iterable[BlockMarkers]) -> Optional[BlockMatch]:
    """Try each marker pair in priority order."""
    if not text:
        return None
    for markers in formats:
        found = markers.match(text)
        if found is not None:
            return found
    return None
