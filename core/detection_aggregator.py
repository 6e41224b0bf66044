"""Detection aggregation: normalization, cross-validation and mixed-ecosystem fusion.

Runs once over the complete list of raw detections after every dispatched
framework analyzer has finished. The pass is pure: the same raw detections
and project facts always yield the same published frameworks. Steps run in
this order:

1. weighted = raw confidence x mean evidence quality multiplier
2. diversity bonus by number of distinct evidence types
3. cross-validation conflict factors (e.g. React inside a Next.js project)
4. final = min(1.0, weighted x cross x diversity)
5. fusion boosts, only for mixed-ecosystem projects
6. rounding to 4 decimals and the per-framework publish threshold
"""
from typing import Callable, Dict, List, Set
import logging

from core.context import ProjectContext
from models.detection import DetectedFramework, Evidence, EvidenceType, RawDetection, UsageExtent
from models.framework import Framework
from rules.rules_loader import CrossValidationRules

logger = logging.getLogger(__name__)

# Project facts that conflict rules may refer to by name
CONDITIONS: Dict[str, Callable[[ProjectContext], bool]] = {
    "has_nextjs_markers": lambda context: context.has_nextjs_markers,
    "has_deno_config": lambda context: context.has_deno_config,
    "is_deno_project": lambda context: context.is_deno_project,
    "has_package_json": lambda context: context.has_package_json,
    "has_tsconfig": lambda context: context.has_tsconfig,
    "has_api_patterns": lambda context: context.has_api_patterns,
    "node_project_without_deno_config": lambda context: context.has_package_json and not context.has_deno_config,
    "nestjs_imports_without_danet_imports": lambda context: context.has_nestjs_imports and not context.has_danet_imports,
}


class DetectionAggregator:
    """Turns raw per-framework detections into published DetectedFramework entries."""

    # Evidence quality multipliers
    QUALITY_MULTIPLIERS = {
        EvidenceType.CONFIG_FILE: 1.2,
        EvidenceType.IMPORT_PATTERN: 1.1,
        EvidenceType.CONTENT_PATTERN: 1.0,
        EvidenceType.FILE_STRUCTURE: 0.8,
    }

    # Bonus by number of distinct evidence types
    DIVERSITY_BONUS = {
        4: 1.1,
        3: 1.05,
        2: 1.02,
        1: 0.95,
        0: 0.9,
    }

    # Lower bounds, checked in order
    USAGE_THRESHOLDS = [
        (0.85, UsageExtent.CORE),
        (0.65, UsageExtent.EXTENSIVE),
        (0.45, UsageExtent.MODERATE),
    ]

    @staticmethod
    def aggregate(
        raw_detections: List[RawDetection],
        context: ProjectContext,
        cross_rules: CrossValidationRules,
        mixed: bool = False,
    ) -> List[DetectedFramework]:
        """
        Normalize, cross-validate and (for mixed projects) fuse raw detections.

        Args:
            raw_detections: Every raw detection of this run
            context: Project facts used by conflict and API conditions
            cross_rules: Conflict and fusion rules
            mixed: True when the primary ecosystem is Mixed

        Returns:
            Published detections sorted by confidence (highest first), then name
        """
        if not raw_detections:
            return []

        confidences: Dict[Framework, float] = {}
        for raw in raw_detections:
            weighted = DetectionAggregator.weighted_confidence(raw.raw_confidence, raw.evidence)
            diversity = DetectionAggregator.diversity_bonus(raw.evidence)
            cross = DetectionAggregator.cross_validation_factor(raw.framework, context, cross_rules)
            final = min(1.0, weighted * cross * diversity)
            logger.debug(
                f"Normalized {raw.framework.value}: raw {raw.raw_confidence:.2f} -> {final:.4f} "
                f"(weighted {weighted:.4f}, cross {cross:.2f}, diversity {diversity:.2f})"
            )
            confidences[raw.framework] = final

        if mixed:
            api_capable = {raw.framework for raw in raw_detections if raw.rule.api_capable}
            confidences = DetectionAggregator.apply_fusion(confidences, context, cross_rules, api_capable)

        published: List[DetectedFramework] = []
        for raw in raw_detections:
            confidence = round(confidences[raw.framework], 4)
            if confidence < raw.rule.threshold:
                logger.debug(
                    f"Dropping {raw.framework.value}: {confidence:.4f} below threshold {raw.rule.threshold}"
                )
                continue

            published.append(
                DetectedFramework(
                    framework=raw.framework,
                    confidence=confidence,
                    evidence=list(raw.evidence),
                    usage_extent=DetectionAggregator.determine_usage_extent(confidence),
                    ecosystem=raw.ecosystem,
                    version=raw.version,
                )
            )

        published.sort(key=lambda d: (-d.confidence, d.framework.value))
        return published

    @staticmethod
    def weighted_confidence(raw_confidence: float, evidence: List[Evidence]) -> float:
        """Raw confidence scaled by the mean quality multiplier of its evidence."""
        if not evidence:
            return 0.0
        multipliers = [DetectionAggregator.QUALITY_MULTIPLIERS.get(e.evidence_type, 1.0) for e in evidence]
        return raw_confidence * (sum(multipliers) / len(multipliers))

    @staticmethod
    def diversity_bonus(evidence: List[Evidence]) -> float:
        distinct = len({e.evidence_type for e in evidence})
        return DetectionAggregator.DIVERSITY_BONUS.get(min(distinct, 4), 1.1)

    @staticmethod
    def cross_validation_factor(
        framework: Framework,
        context: ProjectContext,
        cross_rules: CrossValidationRules,
    ) -> float:
        """Product of the conflict factors whose condition holds for this project."""
        factor = 1.0
        for conflict in cross_rules.conflicts:
            if conflict.framework != framework:
                continue
            condition = CONDITIONS.get(conflict.when)
            if condition is None:
                logger.warning(f"Unknown conflict condition '{conflict.when}' for {framework.value}, ignoring")
                continue
            if condition(context):
                logger.debug(f"Conflict '{conflict.when}' applies to {framework.value}: x{conflict.factor}")
                factor *= conflict.factor
        return factor

    @staticmethod
    def apply_fusion(
        confidences: Dict[Framework, float],
        context: ProjectContext,
        cross_rules: CrossValidationRules,
        api_capable: Set[Framework],
    ) -> Dict[Framework, float]:
        """
        Mixed-ecosystem boosts, each step capped at 1.0.

        A framework in at least one fullstack pair whose partner was also
        detected is boosted once; fullstack frameworks (Next.js) are always
        boosted; API-capable frameworks get a further boost when the project
        shows API communication syntax.
        """
        present = set(confidences)
        fused = dict(confidences)

        paired: Set[Framework] = set()
        for first, second in cross_rules.fullstack_pairs:
            if first in present and second in present:
                paired.update((first, second))

        for framework in sorted(fused, key=lambda f: f.value):
            if framework in paired or framework in cross_rules.fullstack_frameworks:
                fused[framework] = min(1.0, fused[framework] * cross_rules.fullstack_boost)
            if context.has_api_patterns and framework in api_capable:
                fused[framework] = min(1.0, fused[framework] * cross_rules.api_boost)

        if fused != confidences:
            logger.debug(f"Fusion adjusted {sum(1 for f in fused if fused[f] != confidences[f])} frameworks")
        return fused

    @staticmethod
    def determine_usage_extent(confidence: float) -> UsageExtent:
        for lower_bound, extent in DetectionAggregator.USAGE_THRESHOLDS:
            if confidence >= lower_bound:
                return extent
        return UsageExtent.LIMITED
