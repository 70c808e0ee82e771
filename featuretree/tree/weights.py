"""
Weight model: exponential priority scores and sibling contribution shares.

weight(node) = 2**frequency + 2**damage

The exponential scale keeps a one-point increase in either dimension ahead
of any linear competitor, so the riskiest and most-used features sort to the
top unambiguously.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence, Tuple

from featuretree.tree.models import FeatureNode

# Light blue (#93c5fd) at the minimum weight, papaya (#fbbf24) at the maximum
COLOR_LOW: Tuple[int, int, int] = (147, 197, 253)
COLOR_HIGH: Tuple[int, int, int] = (251, 191, 36)


def weight(node: FeatureNode) -> int:
    return 2 ** node.frequency + 2 ** node.damage


def round_half_up(value: float, digits: int = 1) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def contribution(node: FeatureNode, siblings: Optional[Sequence[FeatureNode]]) -> Optional[float]:
    """
    Percentage share of `node` in the total weight of its sibling set.

    Args:
        node: The feature being scored.
        siblings: All direct children of the node's parent, including the
            node itself, or None when the node is a root.

    Returns:
        The share rounded to one decimal, None for a root (no denominator
        exists), or 0.0 when every sibling weighs zero.
    """
    if siblings is None:
        return None
    total = sum(weight(s) for s in siblings)
    if total == 0:
        return 0.0
    return round_half_up(100 * weight(node) / total)


def subtree_weight(node: FeatureNode) -> int:
    """Sum of the weights of every descendant of `node` (the node excluded)."""
    return sum(weight(child) + subtree_weight(child) for child in node.children)


def weight_range(forest: Iterable[FeatureNode]) -> Tuple[int, int]:
    """(min, max) weight across the whole forest; (0, 0) when it is empty."""
    weights = [weight(n) for n in _walk(forest)]
    if not weights:
        return 0, 0
    return min(weights), max(weights)


def weight_color(value: int, minimum: int, maximum: int) -> str:
    """Interpolate a CSS rgb() colour for `value` within [minimum, maximum]."""
    if maximum == minimum:
        return "rgb({}, {}, {})".format(*COLOR_LOW)
    ratio = (value - minimum) / (maximum - minimum)
    r, g, b = (
        int(round_half_up(low + (high - low) * ratio, 0))
        for low, high in zip(COLOR_LOW, COLOR_HIGH)
    )
    return f"rgb({r}, {g}, {b})"


def _walk(forest: Iterable[FeatureNode]):
    for node in forest:
        yield node
        yield from _walk(node.children)
