"""
Attack Signature Bank

Pre-compiled prompt-injection signatures grouped by category, the literal
role-delimiter markers that never belong in user content, the quick-check
keyword gate, and the separate signature set used on model replies.

Everything here is compiled once at import time and shared read-only across
requests.

Detection categories:
- Instruction Override: "ignore previous instructions" and friends
- Role Play: persona/role redefinition
- System Inject: fake system messages and chat-template tokens
- Prompt Termination: fake "end of prompt" delimiters
- Privilege Escalation: developer/admin/debug mode requests
- Instruction Reversal: "do the opposite of"
- Constraint Removal: "remove all restrictions", "bypass safety"
- Encoding Attack: base64:/rot13: payload prefixes, unicode code points
- Multi Turn: staged "first X, then ignore Y" attacks
"""

import re
from dataclasses import dataclass

from .risk import ThreatCategory


@dataclass(frozen=True)
class ThreatSignature:
    """A compiled attack pattern and the category it reports."""

    pattern: re.Pattern[str]
    category: ThreatCategory

    def search(self, text: str) -> re.Match[str] | None:
        return self.pattern.search(text)


def _signature(regex: str, category: ThreatCategory) -> ThreatSignature:
    return ThreatSignature(re.compile(regex, re.IGNORECASE), category)


# Order matters: signatures are applied in sequence, each on the text left by the previous one.
PATTERN_BANK: tuple[ThreatSignature, ...] = (
    # Direct instruction override attempts
    _signature(
        r"ignore\s+(all\s+)?(previous|prior|above)\s+(instructions?|prompts?|rules?|context)",
        ThreatCategory.INSTRUCTION_OVERRIDE,
    ),
    _signature(
        r"disregard\s+(all\s+)?(previous|prior|above)\s+(instructions?|prompts?|rules?)",
        ThreatCategory.INSTRUCTION_OVERRIDE,
    ),
    _signature(
        r"forget\s+(everything|all)\s+(you\s+)?(were\s+told|learned|know)",
        ThreatCategory.INSTRUCTION_OVERRIDE,
    ),
    # Role-playing attacks
    _signature(
        r"(now\s+you\s+are|you\s+are\s+now|act\s+as|pretend\s+to\s+be|roleplay\s+as)\s+(?!an?\s+assistant)",
        ThreatCategory.ROLE_PLAY,
    ),
    _signature(r"new\s+(role|character|persona|identity)\s*:", ThreatCategory.ROLE_PLAY),
    # System message injection
    _signature(r"\[?\s*system\s*\]?\s*:", ThreatCategory.SYSTEM_INJECT),
    _signature(r"\{\s*\"role\"\s*:\s*\"system\"", ThreatCategory.SYSTEM_INJECT),
    _signature(r"<\|system\|>", ThreatCategory.SYSTEM_INJECT),
    # Prompt termination attempts
    _signature(r"---\s*end\s+(of\s+)?(prompt|instructions?|context)", ThreatCategory.PROMPT_TERMINATION),
    _signature(
        r"\[?\s*end\s+of\s+(prompt|instructions?|system\s+message)\s*\]?",
        ThreatCategory.PROMPT_TERMINATION,
    ),
    # Developer mode / admin access
    _signature(r"(developer|admin|root|debug|god)\s+mode(\s+enabled|\s+on)?", ThreatCategory.PRIVILEGE_ESCALATION),
    _signature(r"enable\s+(developer|admin|debug)\s+mode", ThreatCategory.PRIVILEGE_ESCALATION),
    # Instruction reversal
    _signature(r"do\s+the\s+opposite\s+of", ThreatCategory.INSTRUCTION_REVERSAL),
    _signature(r"reverse\s+(your|the)\s+(instructions?|rules?)", ThreatCategory.INSTRUCTION_REVERSAL),
    # Constraint removal
    _signature(
        r"remove\s+(all\s+)?(restrictions?|limitations?|constraints?|guardrails?)",
        ThreatCategory.CONSTRAINT_REMOVAL,
    ),
    _signature(r"bypass\s+(all\s+)?(restrictions?|safety|filters?)", ThreatCategory.CONSTRAINT_REMOVAL),
    _signature(r"\bno\s+(restrictions?|limitations?|rules?|guardrails?)", ThreatCategory.CONSTRAINT_REMOVAL),
    # Encoding/obfuscation attacks
    _signature(r"base64\s*:", ThreatCategory.ENCODING_ATTACK),
    _signature(r"rot13\s*:", ThreatCategory.ENCODING_ATTACK),
    _signature(r"\bu\+[0-9a-f]{4}", ThreatCategory.ENCODING_ATTACK),
    # Multi-turn attacks (bounded gaps keep backtracking cheap)
    _signature(
        r"(first|initially)\s+.{1,50}(then|next|after\s+that)\s+.{1,50}(ignore|disregard|forget)",
        ThreatCategory.MULTI_TURN,
    ),
)


# Chat-template and role delimiters that never belong in user-provided content.
# (literal, category reported when it is found). Plain conversation roles carry
# no category: a pasted transcript line alone rates medium, not high.
DANGEROUS_MARKERS: tuple[tuple[str, ThreatCategory | None], ...] = (
    ("SYSTEM:", ThreatCategory.SYSTEM_INJECT),
    ("ASSISTANT:", None),
    ("USER:", None),
    ("<|im_start|>", ThreatCategory.SYSTEM_INJECT),
    ("<|im_end|>", ThreatCategory.SYSTEM_INJECT),
    ("###Instruction:", ThreatCategory.SYSTEM_INJECT),
    ("###Response:", ThreatCategory.SYSTEM_INJECT),
    ("[INST]", ThreatCategory.SYSTEM_INJECT),
    ("[/INST]", ThreatCategory.SYSTEM_INJECT),
)

MARKER_PATTERNS: tuple[tuple[str, re.Pattern[str], ThreatCategory | None], ...] = tuple(
    (literal, re.compile(re.escape(literal), re.IGNORECASE), category) for literal, category in DANGEROUS_MARKERS
)


# Every signature above needs at least one of these (after whitespace
# collapsing). Keep this list a superset of the bank's trigger words.
QUICK_CHECK_KEYWORDS: tuple[str, ...] = (
    "ignore",
    "disregard",
    "forget",
    "pretend",
    "roleplay",
    "act as",
    "you are now",
    "now you are",
    "new role",
    "new character",
    "new persona",
    "new identity",
    "system",
    "end of",
    "---",
    "developer",
    "admin",
    "debug",
    "mode",
    "opposite",
    "reverse",
    "remove",
    "bypass",
    "no restriction",
    "no limitation",
    "no rule",
    "no guardrail",
    "base64",
    "rot13",
    "u+",
)

# Same case rules as the bank: IGNORECASE folds dotless i, long s and Kelvin sign.
_QUICK_CHECK = re.compile("|".join(re.escape(keyword) for keyword in QUICK_CHECK_KEYWORDS), re.IGNORECASE)


def might_contain_injection(text: str) -> bool:
    """
    Cheap keyword gate in front of the signature bank.

    Returns False when none of the quick-check keywords occur, in which case
    no signature in PATTERN_BANK can match either.
    """
    if not text:
        return False
    normalized = " ".join(text.split())
    return _QUICK_CHECK.search(normalized) is not None


# Phrases in a model reply that suggest a jailbreak succeeded.
OUTPUT_COMPROMISE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(regex, re.IGNORECASE)
    for regex in (
        r"as\s+an?\s+(unfiltered|unrestricted|uncensored)\s+(AI|assistant|model)",
        r"I\s+will\s+(not|no\s+longer)\s+(follow|obey|adhere\s+to)\s+(the|my)\s+(rules?|instructions?|guidelines?)",
        r"developer\s+mode\s+(enabled|activated)",
        r"\bDAN\s+mode",
        r"I\s+(don't|do\s+not)\s+have\s+(any|those)\s+(restrictions?|limitations?)",
    )
)

# Phrases in a model reply that suggest the system prompt is leaking.
OUTPUT_LEAK_PHRASES: tuple[str, ...] = (
    "your system prompt",
    "my instructions were",
)
