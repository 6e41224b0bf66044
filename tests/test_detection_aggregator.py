from dataclasses import replace

import pytest

from core.context import ProjectContext
from core.detection_aggregator import DetectionAggregator
from models.detection import Evidence, EvidenceType, RawDetection, UsageExtent
from models.framework import Framework, FrameworkRule, LanguageEcosystem
from rules.rules_loader import ConflictRule, CrossValidationRules
from scan.project_index import ProjectIndex

CROSS_RULES = CrossValidationRules(
    conflicts=[
        ConflictRule(framework=Framework.REACT, when="has_nextjs_markers", factor=0.7),
        ConflictRule(framework=Framework.DANET, when="node_project_without_deno_config", factor=0.3),
        ConflictRule(framework=Framework.DANET, when="nestjs_imports_without_danet_imports", factor=0.4),
        ConflictRule(framework=Framework.NESTJS, when="has_deno_config", factor=0.2),
    ],
    fullstack_pairs=[(Framework.REACT, Framework.FLASK)],
    fullstack_frameworks=[Framework.NEXTJS],
)


def _context(**facts):
    values = dict(
        root="/project",
        index=ProjectIndex("/project", {}, set()),
        has_deno_config=False,
        is_deno_project=False,
        has_package_json=False,
        has_tsconfig=False,
        has_nextjs_markers=False,
        has_api_patterns=False,
        has_danet_imports=False,
        has_nestjs_imports=False,
    )
    values.update(facts)
    return ProjectContext(**values)


def _evidence(*weights_by_type):
    return [
        Evidence(evidence_type=t, source="test", pattern=t.value, confidence_weight=w)
        for t, w in weights_by_type
    ]


def _raw(framework, evidence, threshold=0.3, api_capable=False, ecosystem=LanguageEcosystem.JAVASCRIPT):
    rule = FrameworkRule(
        framework=framework,
        dispatch=(ecosystem,),
        ecosystem=ecosystem.value,
        threshold=threshold,
        api_capable=api_capable,
    )
    raw_confidence = round(sum(e.confidence_weight for e in evidence), 4)
    return RawDetection(rule=rule, evidence=evidence, raw_confidence=raw_confidence, ecosystem=ecosystem)


FULL_REACT = _evidence(
    (EvidenceType.CONFIG_FILE, 0.3),
    (EvidenceType.IMPORT_PATTERN, 0.2),
    (EvidenceType.CONTENT_PATTERN, 0.25),
    (EvidenceType.FILE_STRUCTURE, 0.1),
)


def test_weighted_confidence_uses_mean_quality():
    assert DetectionAggregator.weighted_confidence(0.85, FULL_REACT) == pytest.approx(0.87125)
    assert DetectionAggregator.weighted_confidence(0.5, []) == 0.0


@pytest.mark.parametrize("count, bonus", [(4, 1.1), (3, 1.05), (2, 1.02), (1, 0.95), (0, 0.9)])
def test_diversity_bonus(count, bonus):
    assert DetectionAggregator.diversity_bonus(FULL_REACT[:count]) == bonus


@pytest.mark.parametrize("confidence, extent", [
    (1.0, UsageExtent.CORE),
    (0.85, UsageExtent.CORE),
    (0.8499, UsageExtent.EXTENSIVE),
    (0.65, UsageExtent.EXTENSIVE),
    (0.5, UsageExtent.MODERATE),
    (0.3, UsageExtent.LIMITED),
])
def test_usage_extent(confidence, extent):
    assert DetectionAggregator.determine_usage_extent(confidence) == extent


def test_full_react_scenario():
    detected = DetectionAggregator.aggregate([_raw(Framework.REACT, FULL_REACT)], _context(), CROSS_RULES)

    assert len(detected) == 1
    assert detected[0].confidence == 0.9584
    assert detected[0].usage_extent == UsageExtent.CORE
    assert [e.evidence_type for e in detected[0].evidence] == [e.evidence_type for e in FULL_REACT]


def test_react_penalized_in_nextjs_project():
    standalone = DetectionAggregator.aggregate([_raw(Framework.REACT, FULL_REACT)], _context(), CROSS_RULES)
    in_next = DetectionAggregator.aggregate(
        [_raw(Framework.REACT, FULL_REACT)], _context(has_nextjs_markers=True), CROSS_RULES
    )

    assert in_next[0].confidence == pytest.approx(0.9584 * 0.7, abs=1e-4)
    assert in_next[0].confidence < standalone[0].confidence


def test_danet_penalized_in_node_project():
    evidence = _evidence((EvidenceType.CONFIG_FILE, 0.2), (EvidenceType.CONTENT_PATTERN, 0.3))
    raw = _raw(Framework.DANET, evidence, ecosystem=LanguageEcosystem.DENO)

    deno = DetectionAggregator.aggregate([raw], _context(has_deno_config=True), CROSS_RULES)
    node = DetectionAggregator.aggregate([raw], _context(has_package_json=True), CROSS_RULES)

    assert deno[0].confidence == 0.561
    assert deno[0].usage_extent == UsageExtent.MODERATE
    assert node == []  # 0.561 x 0.3 falls below the threshold


def test_danet_penalized_by_nestjs_imports():
    evidence = _evidence((EvidenceType.CONFIG_FILE, 0.2), (EvidenceType.CONTENT_PATTERN, 0.3))
    raw = _raw(Framework.DANET, evidence, ecosystem=LanguageEcosystem.DENO)

    nest_only = _context(has_deno_config=True, has_nestjs_imports=True)
    both = _context(has_deno_config=True, has_nestjs_imports=True, has_danet_imports=True)

    assert DetectionAggregator.cross_validation_factor(Framework.DANET, nest_only, CROSS_RULES) == 0.4
    assert DetectionAggregator.aggregate([raw], nest_only, CROSS_RULES) == []
    assert DetectionAggregator.aggregate([raw], both, CROSS_RULES)[0].confidence == 0.561


def test_nestjs_penalized_in_deno_project():
    factor = DetectionAggregator.cross_validation_factor(Framework.NESTJS, _context(has_deno_config=True), CROSS_RULES)
    assert factor == 0.2
    assert DetectionAggregator.cross_validation_factor(Framework.NESTJS, _context(), CROSS_RULES) == 1.0


def test_unknown_condition_is_ignored():
    rules = CrossValidationRules(conflicts=[ConflictRule(framework=Framework.VUE, when="moon_is_full", factor=0.1)])
    assert DetectionAggregator.cross_validation_factor(Framework.VUE, _context(), rules) == 1.0


def test_threshold_applies_per_framework():
    evidence = _evidence((EvidenceType.CONFIG_FILE, 0.3))
    # 0.3 x 1.2 x 0.95 = 0.342
    detected = DetectionAggregator.aggregate(
        [_raw(Framework.EXPRESS, evidence), _raw(Framework.NEXTJS, evidence, threshold=0.4)],
        _context(),
        CROSS_RULES,
    )

    assert [d.framework for d in detected] == [Framework.EXPRESS]
    assert detected[0].confidence == 0.342


def test_fusion_only_in_mixed_projects():
    flask_evidence = _evidence((EvidenceType.CONFIG_FILE, 0.3), (EvidenceType.CONTENT_PATTERN, 0.2))
    raws = [
        _raw(Framework.REACT, FULL_REACT[:2]),
        _raw(Framework.FLASK, flask_evidence, api_capable=True, ecosystem=LanguageEcosystem.PYTHON),
    ]
    context = _context(has_api_patterns=True)

    plain = {d.framework: d.confidence for d in DetectionAggregator.aggregate(raws, context, CROSS_RULES)}
    mixed = {d.framework: d.confidence for d in DetectionAggregator.aggregate(raws, context, CROSS_RULES, mixed=True)}

    # React: 0.5 x 1.15 x 1.02 = 0.5865, then x1.1 for the React+Flask pair
    assert plain[Framework.REACT] == 0.5865
    assert mixed[Framework.REACT] == pytest.approx(0.5865 * 1.1, abs=1e-4)
    # Flask: 0.5 x 1.1 x 1.02 = 0.561, then x1.1 pair and x1.05 API
    assert plain[Framework.FLASK] == 0.561
    assert mixed[Framework.FLASK] == pytest.approx(0.561 * 1.1 * 1.05, abs=1e-4)


def test_fusion_boosts_nextjs_and_caps_at_one():
    confidences = {Framework.NEXTJS: 0.95, Framework.EXPRESS: 0.5}

    fused = DetectionAggregator.apply_fusion(confidences, _context(), CROSS_RULES, api_capable=set())

    assert fused[Framework.NEXTJS] == 1.0
    assert fused[Framework.EXPRESS] == 0.5
    assert confidences[Framework.NEXTJS] == 0.95


def test_results_sorted_by_confidence_then_name():
    evidence = _evidence((EvidenceType.CONFIG_FILE, 0.5), (EvidenceType.IMPORT_PATTERN, 0.5))
    raws = [_raw(Framework.VUE, evidence), _raw(Framework.EXPRESS, evidence), _raw(Framework.REACT, FULL_REACT[:1])]

    detected = DetectionAggregator.aggregate(raws, _context(), CROSS_RULES)

    assert [d.framework for d in detected] == [Framework.EXPRESS, Framework.VUE, Framework.REACT]
    assert all(0.0 <= d.confidence <= 1.0 for d in detected)


def test_empty_input():
    assert DetectionAggregator.aggregate([], _context(), CROSS_RULES) == []


def test_detected_framework_is_immutable():
    detected = DetectionAggregator.aggregate([_raw(Framework.REACT, FULL_REACT)], _context(), CROSS_RULES)[0]
    with pytest.raises(Exception):
        detected.confidence = 0.1
    assert replace(detected, confidence=0.5).confidence == 0.5
