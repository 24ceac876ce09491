"""Next target version selection."""

import random
from typing import Optional, Sequence


def select_target_version(
    versions: Sequence[str],
    random_order: bool = False,
    step: int = 1,
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    """Pick the next OS version to update to.

    Args:
        versions: Supported versions, newest first, as returned by the API
        random_order: Pick uniformly from the whole list instead of by position
        step: Positional offset; the target is versions[len - 2 * step]
        rng: Random source for random_order (module random if None)

    Returns:
        Target version, or None when the list has fewer than two entries
        (the device is already on the last rung)
    """
    if len(versions) <= 1:
        return None

    if random_order:
        return (rng or random).choice(list(versions))

    # Clamp instead of wrapping around when step is larger than the list
    index = max(len(versions) - 2 * step, 0)
    return versions[index]
