"""
Member identifier generation.

Identifiers look like COM-482913-071: the last six digits of the current
Unix time in milliseconds followed by a zero-padded random number.
They are cheap and human-presentable but not globally unique on their own;
the store's uniqueness constraint is the source of truth.
"""

import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field

MEMBER_ID_PREFIX = "COM"
MEMBER_ID_PATTERN = re.compile(r"^COM-\d{6}-\d{3}$")


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class IdentifierGenerator:
    """Produces COM-dddddd-ddd member identifiers."""

    clock: Callable[[], int] = _now_millis
    rng: random.Random = field(default_factory=random.Random)

    def generate(self) -> str:
        timestamp = str(self.clock())[-6:].zfill(6)
        suffix = self.rng.randint(0, 999)
        return f"{MEMBER_ID_PREFIX}-{timestamp}-{suffix:03d}"
