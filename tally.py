"""Deterministic vote distributions.

Until a poll's on-chain counters are wired in, results are simulated from
the poll's identity: the same id and title always give the same numbers and
nothing is stored.
"""
import math
from decimal import Decimal
from typing import List

from models import Tally

HASH_MODULUS = 2 ** 31 - 1
MIN_TOTAL_VOTES = 20
TOTAL_VOTES_SPAN = 280


def _utf16_units(text: str):
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def string_hash(text: str) -> int:
    """31-multiplier string hash wrapped to a signed 32-bit integer."""
    h = 0
    for unit in _utf16_units(text):
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 2 ** 31:
        h -= 2 ** 32
    return h


def unit_value(text: str) -> float:
    return (abs(string_hash(text)) % HASH_MODULUS) / HASH_MODULUS


def _number_text(value: float) -> str:
    # Decimal text as a browser would print it, so seeds chain the same way.
    if value == 0:
        return "0"
    text = repr(value)
    if abs(value) >= 1e-6:
        # positional down to 1e-6, exponent form only below that
        text = format(Decimal(text), "f")
        if text.endswith(".0"):
            text = text[:-2]
        return text
    return text.replace("e-0", "e-")


def random_chain(seed: str, count: int) -> List[float]:
    values = []
    running = seed
    for _ in range(count):
        value = unit_value(running)
        values.append(value)
        running += _number_text(value)
    return values


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def normalize_percentages(votes: List[int]) -> List[int]:
    """Whole percentages that add up to exactly 100.

    All zeros when nobody has voted yet.
    """
    total = sum(votes)
    if not votes or total <= 0:
        return [0] * len(votes)

    percentages = [_round_half_up(v / total * 100) for v in votes]
    diff = 100 - sum(percentages)
    if diff:
        largest = percentages.index(max(percentages))
        percentages[largest] = max(percentages[largest] + diff, 0)

    if sum(percentages) != 100:
        n = len(votes)
        remaining = 100
        for i, v in enumerate(votes):
            if i == n - 1:
                percentages[i] = remaining
            else:
                share = min(_round_half_up(v / total * 100), remaining - (n - 1 - i))
                percentages[i] = max(share, 1)
            remaining -= percentages[i]
    return percentages


def simulate_tally(poll_id: str, title: str, option_count: int) -> Tally:
    if option_count <= 0:
        return Tally(total_votes=0, option_votes=[], percentages=[])

    draws = random_chain(f"{title}{poll_id}", option_count + 1)
    total = math.floor(MIN_TOTAL_VOTES + draws[0] * TOTAL_VOTES_SPAN)

    option_votes = []
    remaining = total
    for i in range(option_count - 1):
        low = math.floor(remaining * 0.10)
        high = math.floor(remaining * 0.60)
        votes = math.floor(low + draws[i + 1] * (high - low))
        option_votes.append(votes)
        remaining -= votes
    option_votes.append(max(remaining, 0))

    return Tally(
        total_votes=total,
        option_votes=option_votes,
        percentages=normalize_percentages(option_votes),
    )
