from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from .config import DEFAULT_SEPARATOR
from .fs_utils import ELLIPSIS, MAX_BASENAME_BYTES
from .models import Batch, BatchPlan, CapacityError, EmptyInputError

logger = logging.getLogger(__name__)

MAX_LOGGED_EXCLUSIONS = 20


def _truncate_utf8(value: str, max_bytes: int) -> str:
    encoded = value.encode("utf-8")
    if len(encoded) <= max_bytes:
        return value
    allowed = max(0, max_bytes - len(ELLIPSIS.encode("utf-8")))
    return encoded[:allowed].decode("utf-8", errors="ignore") + ELLIPSIS


def batch_name(
    first: str, last: str, separator: str = DEFAULT_SEPARATOR, extra: str = ""
) -> str:
    name = f"{first}{separator}{last}{extra}"
    if len(name.encode("utf-8")) <= MAX_BASENAME_BYTES:
        return name
    # Shorten both ends evenly so the name still fits a single path component.
    budget = MAX_BASENAME_BYTES - len(separator.encode("utf-8")) - len(extra.encode("utf-8"))
    half = max(0, budget) // 2
    return (
        f"{_truncate_utf8(first, half)}{separator}{_truncate_utf8(last, half)}{extra}"
    )


def _unique_batch_name(first: str, last: str, separator: str, taken: set[str]) -> str:
    name = batch_name(first, last, separator)
    counter = 1
    while name in taken:
        # Shortened names can coincide; a counter keeps batch folders distinct.
        name = batch_name(first, last, separator, f"_{counter}")
        counter += 1
    taken.add(name)
    return name


def plan_batches(
    names: Sequence[str],
    batch_size: int = 100,
    max_batches: int = 100,
    *,
    separator: str = DEFAULT_SEPARATOR,
    strict: bool = False,
) -> BatchPlan:
    """Split already sorted ``names`` into contiguous batches.

    Names beyond ``batch_size * max_batches`` are left out of the plan and
    reported in ``BatchPlan.excluded``; with ``strict`` they raise
    :class:`CapacityError` instead.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if max_batches < 1:
        raise ValueError(f"max_batches must be positive, got {max_batches}")
    count = len(names)
    if count == 0:
        raise EmptyInputError("No artist directories found")

    needed = math.ceil(count / batch_size)
    num_batches = min(needed, max_batches)
    capacity = num_batches * batch_size
    excluded = list(names[capacity:])
    if excluded:
        message = (
            f"More than {max_batches} batches needed ({needed}); "
            f"only the first {capacity} of {count} artists fit"
        )
        if strict:
            raise CapacityError(message)
        logger.warning("%s. %d artist(s) excluded from this run", message, len(excluded))
        shown = ", ".join(excluded[:MAX_LOGGED_EXCLUSIONS])
        if len(excluded) > MAX_LOGGED_EXCLUSIONS:
            shown += f", ... (+{len(excluded) - MAX_LOGGED_EXCLUSIONS} more)"
        logger.warning("Excluded: %s", shown)

    batches: list[Batch] = []
    taken: set[str] = set()
    for index in range(num_batches):
        members = tuple(names[index * batch_size : min((index + 1) * batch_size, count)])
        batches.append(
            Batch(
                index=index,
                name=_unique_batch_name(members[0], members[-1], separator, taken),
                artists=members,
            )
        )
    return BatchPlan(batches=batches, excluded=excluded)
