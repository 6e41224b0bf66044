from typing import List
import logging

from core.analyzer_registry import AnalyzerRegistry
from core.context import ProjectContext
from models.detection import Evidence, EvidenceType
from models.framework import EvidenceRule


@AnalyzerRegistry.register("config_file", EvidenceType.CONFIG_FILE)
class ConfigFileAnalyzer:
    """Checks manifests and framework config files.

    A rule with values matches on the first listed file that exists and
    contains any of them; a rule without values matches on existence alone.
    """

    def __init__(self, rules: List[EvidenceRule]):
        self.rules = rules

    def analyze(self, context: ProjectContext) -> List[Evidence]:
        logger = logging.getLogger(__name__)
        evidence: List[Evidence] = []

        for rule in self.rules:
            for filename in rule.files:
                if not context.index.has_file(filename):
                    continue

                if rule.values:
                    content = context.index.read_file(filename)
                    if content is None:
                        continue
                    haystack = content.lower() if rule.ignore_case else content
                    needles = [v.lower() for v in rule.values] if rule.ignore_case else rule.values
                    if not any(n in haystack for n in needles):
                        continue

                logger.debug(f"ConfigFileAnalyzer matched {filename} ({rule.description})")
                evidence.append(
                    Evidence(
                        evidence_type=EvidenceType.CONFIG_FILE,
                        source=rule.source or filename,
                        pattern=rule.description or f"{filename} present",
                        confidence_weight=rule.confidence,
                    )
                )
                break

        return evidence
