"""Decode the textual replies returned by the Minecraft remote console."""
from __future__ import annotations

import re
from typing import List, Tuple

from position_relay.domain.errors import ParseError

_COUNT_PATTERN = re.compile(r"\d+")
_NUMBER_PATTERN = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
# Brackets, whitespace and NBT numeric type suffixes (1.0d, 2.5f, ...).
_NOISE_PATTERN = re.compile(r"[\[\]\s]|(?<=[\d.])[dDfFbBsSlL](?=,|$)")


def parse_player_list(text: str) -> List[str]:
    """Return the player names listed in a ``list`` command response.

    The first integer of the response is the online player count, e.g.
    ``"There are 2 of a max of 20 players online: Alice, Bob"``. When it is zero
    an empty list is returned without looking at the rest of the text.
    """

    count_match = _COUNT_PATTERN.search(text)
    if count_match is None:
        raise ParseError(f"No player count found in list response: {text!r}")

    if int(count_match.group()) == 0:
        return []

    _, separator, names = text.partition(":")
    if not separator:
        raise ParseError(f"No player names found in list response: {text!r}")

    return [name.strip() for name in names.split(",") if name.strip()]


def parse_coordinates(text: str) -> Tuple[float, float, float]:
    """Return the ``(x, y, z)`` triple from a ``data get entity <name> Pos`` reply.

    Replies look like ``"Alice has the following entity data: [1.0d, 64.0d, -3.5d]"``.
    """

    _, separator, remainder = text.partition(":")
    if not separator:
        raise ParseError(f"No coordinates found in response: {text!r}")
    cleaned = _NOISE_PATTERN.sub("", remainder)

    values: List[float] = []
    for token in cleaned.split(","):
        match = _NUMBER_PATTERN.search(token)
        if match is None:
            continue
        values.append(float(match.group()))

    if len(values) < 3:
        raise ParseError(f"Expected three coordinates in response: {text!r}")

    return values[0], values[1], values[2]


def parse_dimension(text: str) -> str:
    """Return the dimension label from a ``data get entity <name> Dimension`` reply."""

    _, separator, remainder = text.partition(":")
    if not separator:
        raise ParseError(f"No dimension found in response: {text!r}")
    return remainder.strip()
