from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from models.framework import Framework, FrameworkRule, LanguageEcosystem


class EvidenceType(str, Enum):
    CONFIG_FILE = "ConfigFile"        # requirements.txt, package.json, pom.xml
    IMPORT_PATTERN = "ImportPattern"  # from flask import, import React
    FILE_STRUCTURE = "FileStructure"  # templates/, src/components
    CONTENT_PATTERN = "ContentPattern"  # @app.route, @Controller


class UsageExtent(str, Enum):
    CORE = "Core"
    EXTENSIVE = "Extensive"
    MODERATE = "Moderate"
    LIMITED = "Limited"


@dataclass(frozen=True)
class Evidence:
    """Represents a piece of evidence for a framework detection."""
    evidence_type: EvidenceType
    source: str  # Human label, e.g. "requirements.txt" or "Python files"
    pattern: str  # What matched, e.g. "Flask dependency"
    confidence_weight: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "evidence_type": self.evidence_type.value,
            "source": self.source,
            "pattern": self.pattern,
            "confidence_weight": self.confidence_weight,
        }


@dataclass(frozen=True)
class RawDetection:
    """Summed evidence for one framework, before normalization and cross-validation."""
    rule: FrameworkRule
    evidence: List[Evidence]
    raw_confidence: float
    ecosystem: LanguageEcosystem
    version: Optional[str] = None

    @property
    def framework(self) -> Framework:
        return self.rule.framework


@dataclass(frozen=True)
class DetectedFramework:
    """Represents a detected framework."""
    framework: Framework
    confidence: float
    evidence: List[Evidence]
    usage_extent: UsageExtent
    ecosystem: LanguageEcosystem
    version: Optional[str] = None  # Extracted from manifests when available

    def to_dict(self) -> Dict[str, Any]:
        return {
            "framework": self.framework.value,
            "version": self.version,
            "confidence": self.confidence,
            "evidence": [e.to_dict() for e in self.evidence],
            "usage_extent": self.usage_extent.value,
            "ecosystem": self.ecosystem.value,
        }


@dataclass(frozen=True)
class FrameworkDetectionResult:
    primary_ecosystem: LanguageEcosystem
    detected_frameworks: List[DetectedFramework] = field(default_factory=list)
    confidence_summary: Dict[Framework, float] = field(default_factory=dict)

    def get(self, framework: Framework) -> Optional[DetectedFramework]:
        for detected in self.detected_frameworks:
            if detected.framework == framework:
                return detected
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_ecosystem": self.primary_ecosystem.value,
            "detected_frameworks": [d.to_dict() for d in self.detected_frameworks],
            "confidence_summary": {
                framework.value: confidence
                for framework, confidence in self.confidence_summary.items()
            },
        }
