"""
Risk Classification

Ordered risk levels, threat categories, and the rules that reduce a list of
findings to a single verdict.

Two stages:
- Per field: classify_field_risk() turns one field's findings into a level.
- Per request: aggregate_risk() takes the maximum level across fields, so one
  badly compromised field dominates the verdict.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, IntEnum


class RiskLevel(IntEnum):
    """Total order over the five severity tiers (safe < low < medium < high < critical)."""

    SAFE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        """Lowercase wire name (e.g. "high")."""
        return self.name.lower()

    @classmethod
    def parse(cls, value: "str | int | RiskLevel") -> "RiskLevel":
        """
        Parse a level from its label, name, or ordinal.

        Raises:
            ValueError: If the value does not name a level
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[str(value).strip().upper()]
        except KeyError as e:
            valid = ", ".join(level.label for level in cls)
            raise ValueError(f"Unknown risk level: {value!r}. Expected one of: {valid}") from e

    def __str__(self) -> str:
        return self.label


class ThreatCategory(str, Enum):
    """Attack signature categories."""

    INSTRUCTION_OVERRIDE = "instruction-override"
    ROLE_PLAY = "role-play"
    SYSTEM_INJECT = "system-inject"
    PROMPT_TERMINATION = "prompt-termination"
    PRIVILEGE_ESCALATION = "privilege-escalation"
    INSTRUCTION_REVERSAL = "instruction-reversal"
    CONSTRAINT_REMOVAL = "constraint-removal"
    ENCODING_ATTACK = "encoding-attack"
    MULTI_TURN = "multi-turn"


# Categories that on their own put a field at high risk
DANGEROUS_CATEGORIES: frozenset[ThreatCategory] = frozenset(
    {
        ThreatCategory.INSTRUCTION_OVERRIDE,
        ThreatCategory.SYSTEM_INJECT,
        ThreatCategory.PRIVILEGE_ESCALATION,
    }
)


class FindingKind(str, Enum):
    """What produced a finding."""

    TRUNCATION = "truncation"
    MARKER = "marker"
    PATTERN = "pattern"
    CONTROL_CHARS = "control_chars"


@dataclass(frozen=True)
class Finding:
    """One human-readable threat note plus the structure the classifier needs."""

    kind: FindingKind
    description: str
    category: ThreatCategory | None = None

    @property
    def is_detection(self) -> bool:
        """True for marker and pattern hits, False for housekeeping notes."""
        return self.kind in (FindingKind.MARKER, FindingKind.PATTERN)


def classify_field_risk(findings: Iterable[Finding]) -> RiskLevel:
    """
    Classify one field from its findings.

    Rules:
    - no findings: safe
    - a single truncation note: low
    - any dangerous category: critical when at least one other distinct
      category is also present, otherwise high
    - other marker/pattern hits: medium, or high when there are more than
      two findings in total
    - housekeeping notes only (truncation, control characters): low

    Adding a finding never lowers the result.
    """
    findings = list(findings)
    if not findings:
        return RiskLevel.SAFE

    if len(findings) == 1 and findings[0].kind is FindingKind.TRUNCATION:
        return RiskLevel.LOW

    categories = {f.category for f in findings if f.category is not None}
    if categories & DANGEROUS_CATEGORIES:
        return RiskLevel.CRITICAL if len(categories) > 1 else RiskLevel.HIGH

    if any(f.is_detection for f in findings):
        return RiskLevel.HIGH if len(findings) > 2 else RiskLevel.MEDIUM

    return RiskLevel.LOW


def aggregate_risk(levels: Iterable[RiskLevel]) -> RiskLevel:
    """Highest level by the total order; safe for an empty request."""
    return max(levels, default=RiskLevel.SAFE)
