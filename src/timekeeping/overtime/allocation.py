from __future__ import annotations

from typing import Sequence


def allocate_proportionally(amount: int, weights: Sequence[int]) -> list[int]:
    """Split ``amount`` across ``weights`` in proportion, summing exactly to ``amount``.

    Largest-remainder method in integer arithmetic; ties go to the earlier
    position. When ``amount`` does not exceed ``sum(weights)`` no share exceeds
    its own weight.
    """
    total_weight = sum(max(w, 0) for w in weights)
    if amount <= 0 or total_weight <= 0:
        return [0] * len(weights)

    scaled = [amount * max(w, 0) for w in weights]
    shares = [s // total_weight for s in scaled]
    remainders = [s % total_weight for s in scaled]

    leftover = amount - sum(shares)
    order = sorted(range(len(weights)), key=lambda i: (-remainders[i], i))
    for i in order[:leftover]:
        shares[i] += 1
    return shares
