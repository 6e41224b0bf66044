"""Generic per-framework evaluation driven by the declarative rule table."""
import logging
from typing import Callable, Dict, List, Optional, Set

from core.analyzer_registry import AnalyzerRegistry
from core.context import ProjectContext
from core.version_utils import extract_version
from models.detection import Evidence, RawDetection
from models.framework import AUTO_ECOSYSTEM, FrameworkRule, LanguageEcosystem

logger = logging.getLogger(__name__)

# Prerequisites gate the whole analysis, unlike evidence which only adds weight
PREREQUISITES: Dict[str, Callable[[ProjectContext], bool]] = {
    "deno_project": lambda context: context.is_deno_project,
}


def resolve_ecosystem(rule: FrameworkRule, context: ProjectContext) -> LanguageEcosystem:
    if rule.ecosystem == AUTO_ECOSYSTEM:
        return LanguageEcosystem.TYPESCRIPT if context.has_tsconfig else LanguageEcosystem.JAVASCRIPT
    return LanguageEcosystem.from_name(rule.ecosystem)


class FrameworkAnalyzer:
    """Evaluates one FrameworkRule against a project: gate, collect evidence, sum, threshold."""

    def __init__(self, rule: FrameworkRule, exclude_analyzers: Set[str] = None):
        self.rule = rule
        self.analyzers = AnalyzerRegistry.instantiate_all(rule.evidence_rules, exclude=exclude_analyzers)

    @property
    def name(self) -> str:
        return self.rule.name

    def prerequisite_met(self, context: ProjectContext) -> bool:
        if not self.rule.requires:
            return True
        predicate = PREREQUISITES.get(self.rule.requires)
        if predicate is None:
            logger.warning(f"Unknown prerequisite '{self.rule.requires}' for {self.name}, treating as unmet")
            return False
        return predicate(context)

    def evaluate(self, context: ProjectContext) -> Optional[RawDetection]:
        if not self.prerequisite_met(context):
            logger.debug(f"{self.name}: prerequisite '{self.rule.requires}' not met, skipping")
            return None

        evidence: List[Evidence] = []
        for analyzer in self.analyzers.values():
            evidence.extend(analyzer.analyze(context))

        raw_confidence = round(sum(e.confidence_weight for e in evidence), 4)
        if raw_confidence < self.rule.threshold:
            logger.debug(f"{self.name}: raw confidence {raw_confidence:.2f} below threshold {self.rule.threshold}")
            return None

        version = None
        for source in self.rule.versions:
            version = extract_version(context.index, source.source, source.package)
            if version:
                break

        logger.debug(f"{self.name}: raw confidence {raw_confidence:.2f} from {len(evidence)} evidence items")
        return RawDetection(
            rule=self.rule,
            evidence=evidence,
            raw_confidence=raw_confidence,
            ecosystem=resolve_ecosystem(self.rule, context),
            version=version,
        )
