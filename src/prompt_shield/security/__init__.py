"""
Security Module

The prompt-injection defense pipeline: signature bank and quick-check gate,
per-field sanitizer, risk classifier, data encoder, semantic scanner, attack
recorder, prompt validator and output scanner.
"""

from .config import FieldLimits, SecurityConfig, load_security_config
from .context import (
    AssistantContextInput,
    EmbeddedWriterInput,
    SanitizationReport,
    SanitizedAssistantContext,
    SanitizedEmbeddedInput,
    sanitize_assistant_context,
    sanitize_embedded_input,
)
from .encoder import encode_as_data
from .patterns import PATTERN_BANK, ThreatSignature, might_contain_injection
from .recorder import AttackRecorder, DetectedAttack, get_attack_recorder, set_attack_recorder
from .risk import Finding, FindingKind, RiskLevel, ThreatCategory, aggregate_risk, classify_field_risk
from .sanitizer import SanitizationResult, sanitize_input
from .semantic_scanner import SemanticScanner, SemanticScanResult, create_semantic_scanner
from .validators import PromptValidationResult, scan_model_output, validate_system_prompt

__all__ = [
    # Configuration
    "SecurityConfig",
    "FieldLimits",
    "load_security_config",
    # Signatures and risk
    "PATTERN_BANK",
    "ThreatSignature",
    "might_contain_injection",
    "RiskLevel",
    "ThreatCategory",
    "Finding",
    "FindingKind",
    "classify_field_risk",
    "aggregate_risk",
    # Sanitization
    "SanitizationResult",
    "sanitize_input",
    "encode_as_data",
    "AssistantContextInput",
    "EmbeddedWriterInput",
    "SanitizationReport",
    "SanitizedAssistantContext",
    "SanitizedEmbeddedInput",
    "sanitize_assistant_context",
    "sanitize_embedded_input",
    # Semantic scanning
    "SemanticScanner",
    "SemanticScanResult",
    "create_semantic_scanner",
    # Recording
    "AttackRecorder",
    "DetectedAttack",
    "get_attack_recorder",
    "set_attack_recorder",
    # Validation
    "PromptValidationResult",
    "validate_system_prompt",
    "scan_model_output",
]
