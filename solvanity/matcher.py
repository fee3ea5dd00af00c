"""Prefix and rarity matching for vanity address search."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from solvanity.core import Keypair

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
MAX_ADDRESS_LENGTH = 44


class RuleKind(Enum):
    RUN = "run"        # single character repeated
    BLOCK = "block"    # multi-character unit tiled back to back


class MatchKind(Enum):
    PREFIX = "prefix"
    RARITY = "rarity"


@dataclass(frozen=True)
class PatternConfig:
    """One rarity entry as loaded from the configuration file."""
    pattern: str
    min_length: int


@dataclass(frozen=True)
class RarityRule:
    """Immutable compiled rarity rule, shared read-only by all workers."""
    kind: RuleKind
    unit: bytes
    min_repeat_count: int

    @property
    def min_address_length(self) -> int:
        return len(self.unit) * self.min_repeat_count


@dataclass(frozen=True)
class MatchResult:
    """A keypair that satisfied the prefix or a rarity rule."""
    kind: MatchKind
    keypair: Keypair
    attempts: int
    pattern: str = ""

    @property
    def address(self) -> str:
        return self.keypair.address_str

    @property
    def private_key(self) -> str:
        return self.keypair.private_key


def compile_rules(configs: Optional[Iterable[PatternConfig]]) -> tuple[RarityRule, ...]:
    """Compile configured patterns into rarity rules, keeping config order.

    Empty patterns are dropped. A minimum below 1 is treated as 1.
    """
    if not configs:
        return ()

    rules = []
    for cfg in configs:
        if not cfg.pattern:
            continue
        unit = cfg.pattern.encode("utf-8")
        kind = RuleKind.RUN if len(unit) == 1 else RuleKind.BLOCK
        rules.append(RarityRule(kind, unit, max(1, cfg.min_length)))
    return tuple(rules)


def prefix_matches(address: bytes, prefix: bytes) -> bool:
    """True if the address starts with the prefix, byte for byte."""
    return address.startswith(prefix)


def _match_run(address: bytes, target: int, min_count: int) -> Optional[bytes]:
    run = 0
    for byte in address:
        if byte == target:
            run += 1
            continue
        if run >= min_count:
            return bytes((target,)) * run
        run = 0
    if run >= min_count:
        return bytes((target,)) * run
    return None


def _match_block(address: bytes, unit: bytes, min_count: int) -> Optional[bytes]:
    size = len(unit)
    end = len(address)
    index = 0
    while index + size <= end:
        if address[index:index + size] != unit:
            index += 1
            continue
        tiles = 1
        cursor = index + size
        while cursor + size <= end and address[cursor:cursor + size] == unit:
            tiles += 1
            cursor += size
        if tiles >= min_count:
            return unit * tiles
        index = cursor
    return None


def find_rare_pattern(address: bytes, rules: tuple[RarityRule, ...]) -> Optional[str]:
    """Return the substring matched by the first qualifying rule, or None.

    Rules are tried in order and the first one that qualifies wins, whatever
    the length of later matches.
    """
    for rule in rules:
        if len(address) < rule.min_address_length:
            continue
        if rule.kind is RuleKind.RUN:
            found = _match_run(address, rule.unit[0], rule.min_repeat_count)
        else:
            found = _match_block(address, rule.unit, rule.min_repeat_count)
        if found is not None:
            return found.decode("utf-8")
    return None


def validate_base58_prefix(prefix: str) -> str:
    """Validate a prefix only uses base-58 characters.

    Returns the prefix unchanged (matching is case-sensitive).
    Raises ValueError for invalid prefixes.
    """
    cleaned = prefix.strip()
    if not cleaned:
        raise ValueError("Prefix cannot be empty.")
    bad = sorted({c for c in cleaned if c not in BASE58_ALPHABET})
    if bad:
        raise ValueError(
            f"Prefix '{prefix}' contains characters outside the base-58 alphabet: "
            f"{''.join(bad)}. Note that 0, O, I and l are never used."
        )
    if len(cleaned) > MAX_ADDRESS_LENGTH:
        raise ValueError(
            f"Prefix length {len(cleaned)} exceeds maximum address length of "
            f"{MAX_ADDRESS_LENGTH} characters."
        )
    return cleaned


def estimate_difficulty(prefix: str, keys_per_sec: float = 20000) -> dict:
    """Estimate expected attempts and time to find a prefix match.

    Returns dict with: expected_attempts, estimated_seconds_per_core, difficulty_description
    """
    expected = 58 ** len(prefix)
    secs = expected / keys_per_sec if keys_per_sec > 0 else None

    if expected < 100:
        desc = "Instant"
    elif expected < 100_000:
        desc = "Seconds"
    elif expected < 10_000_000:
        desc = "Minutes"
    elif expected < 1_000_000_000:
        desc = "Hours"
    elif expected < 100_000_000_000:
        desc = "Days"
    else:
        desc = "Weeks+ (consider a shorter prefix)"

    return {
        "expected_attempts": expected,
        "estimated_seconds_per_core": secs,
        "difficulty_description": desc,
    }
