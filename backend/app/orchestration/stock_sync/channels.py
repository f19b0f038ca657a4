from __future__ import annotations

from enum import Enum
from typing import List, Optional, Protocol, Sequence

from app.core.config import settings


class Channel(str, Enum):
    A = "A"              # B2C, FINA price tier 3
    B = "B"              # B2B, FINA price tier 5
    UNMAPPED = "UNMAPPED"


class ChannelRule(Protocol):
    """Assigns one channel per variant; the returned list is parallel to `variants`."""

    def assign(self, variants: Sequence) -> List[Channel]: ...


class PositionalChannelRule:
    """Lookup order decides: 0 -> A, 1 -> B, everything after is left alone."""

    def assign(self, variants: Sequence) -> List[Channel]:
        out: List[Channel] = []
        for index, _ in enumerate(variants):
            if index == 0:
                out.append(Channel.A)
            elif index == 1:
                out.append(Channel.B)
            else:
                out.append(Channel.UNMAPPED)
        return out


class TitleChannelRule:
    """
    Variant title carries the channel marker (e.g. "B2C" / "B2B", case-insensitive).
    The first variant per channel wins; unmarked or duplicate variants are UNMAPPED.
    """

    def __init__(self, marker_a: Optional[str] = None, marker_b: Optional[str] = None) -> None:
        self.marker_a = (marker_a or settings.SYNC_CHANNEL_MARKER_A).strip().lower()
        self.marker_b = (marker_b or settings.SYNC_CHANNEL_MARKER_B).strip().lower()

    def _channel_of(self, title: str) -> Channel:
        t = (title or "").lower()
        has_a = bool(self.marker_a) and self.marker_a in t
        has_b = bool(self.marker_b) and self.marker_b in t
        if has_a and not has_b:
            return Channel.A
        if has_b and not has_a:
            return Channel.B
        return Channel.UNMAPPED

    def assign(self, variants: Sequence) -> List[Channel]:
        seen = set()
        out: List[Channel] = []
        for variant in variants:
            channel = self._channel_of(getattr(variant, "title", "") or "")
            if channel is not Channel.UNMAPPED and channel in seen:
                channel = Channel.UNMAPPED
            seen.add(channel)
            out.append(channel)
        return out


def channel_rule_from_settings(name: Optional[str] = None) -> ChannelRule:
    key = (name or settings.SYNC_CHANNEL_RULE or "position").strip().lower()
    if key == "position":
        return PositionalChannelRule()
    if key == "title":
        return TitleChannelRule()
    raise ValueError(f"unknown SYNC_CHANNEL_RULE: {key!r} (expected 'position' or 'title')")
