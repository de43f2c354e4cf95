"""Round-up money arithmetic shared by scheduling and reconciliation"""

from typing import List


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer ceiling division for non-negative numerators (no float rounding)"""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return -(-numerator // denominator)


def split_amount(total: int, parts: int) -> List[int]:
    """
    Split an amount into `parts` integer shares using the round-up policy.

    Every share is ceil(total / parts); the trailing shares absorb the
    rounding surplus so the shares always sum to exactly `total`.
    Allocation stops once the total is exhausted, so no share is negative.

    Example:
        90000 over 7 -> [12858] * 6 + [12852]
        5 over 4     -> [2, 2, 1, 0]
    """
    if parts <= 0:
        raise ValueError("parts must be positive")
    if total < 0:
        raise ValueError("total must not be negative")

    per_part = ceil_div(total, parts)
    shares = []
    left = total
    for _ in range(parts):
        share = min(per_part, left)
        shares.append(share)
        left -= share

    return shares


def format_amount(amount: int, label: str = "") -> str:
    """Comma-grouped display string, e.g. 12858 -> 'Rs. 12,858'"""
    text = f"{amount:,}"
    return f"{label} {text}" if label else text
