from __future__ import annotations


def levenshtein(left: str, right: str, *, limit: int | None = None) -> int:
    """Edit distance between two strings.

    With ``limit`` set, returns ``limit + 1`` as soon as every path exceeds it.
    """
    if left == right:
        return 0
    if len(left) < len(right):
        left, right = right, left
    if limit is not None and len(left) - len(right) > limit:
        return limit + 1
    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        if limit is not None and min(current) > limit:
            return limit + 1
        previous = current
    return previous[-1]


def closest(token: str, targets: list[str] | tuple[str, ...], *, max_distance: int) -> tuple[str, int] | None:
    best: tuple[str, int] | None = None
    for target in targets:
        distance = levenshtein(token, target, limit=max_distance)
        if distance > max_distance:
            continue
        if best is None or distance < best[1]:
            best = (target, distance)
    return best
