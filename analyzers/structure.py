from typing import List
import logging

from core.analyzer_registry import AnalyzerRegistry
from core.context import ProjectContext
from models.detection import Evidence, EvidenceType
from models.framework import EvidenceRule, StructureCheck


def _check_passes(check: StructureCheck, context: ProjectContext) -> bool:
    index = context.index
    if check.files and any(index.has_file(f) for f in check.files):
        return True
    if check.directories and any(index.has_directory(d) for d in check.directories):
        return True
    return False


def score_checks(checks: List[StructureCheck], context: ProjectContext) -> float:
    """Sum the weights of satisfied checks; a first_of group counts its first satisfied alternative."""
    score = 0.0
    for check in checks:
        if check.first_of:
            for alternative in check.first_of:
                if _check_passes(alternative, context):
                    score += alternative.confidence
                    break
        elif _check_passes(check, context):
            score += check.confidence
    return round(score, 4)


@AnalyzerRegistry.register("file_structure", EvidenceType.FILE_STRUCTURE)
class FileStructureAnalyzer:
    """Expected directories and entry files, summed into one evidence item per rule."""

    def __init__(self, rules: List[EvidenceRule]):
        self.rules = rules

    def analyze(self, context: ProjectContext) -> List[Evidence]:
        logger = logging.getLogger(__name__)
        evidence: List[Evidence] = []

        for rule in self.rules:
            score = score_checks(list(rule.checks), context)
            if score <= 0.0:
                continue

            logger.debug(f"FileStructureAnalyzer scored {score:.2f} ({rule.description})")
            evidence.append(
                Evidence(
                    evidence_type=EvidenceType.FILE_STRUCTURE,
                    source=rule.source or "Project structure",
                    pattern=rule.description or "File structure",
                    confidence_weight=score,
                )
            )

        return evidence
