"""Validation suite: run the engine over labelled projects and score its accuracy.

Cases are described in YAML:

    - name: flask-basic
      project_path: fixtures/flask_app   # relative to the YAML file
      expected_ecosystem: Python
      case_type: positive
      expected_frameworks:
        - {framework: Flask, min_confidence: 0.5, should_detect: true, version: "2.3.2"}
        - {framework: Django, should_detect: false}
"""
import os
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml

from core.engine import Engine
from models.detection import FrameworkDetectionResult
from models.framework import Framework, LanguageEcosystem

logger = logging.getLogger(__name__)


class CaseType(str, Enum):
    POSITIVE = "positive"  # Should detect specific frameworks
    NEGATIVE = "negative"  # Should NOT detect specific frameworks
    DISAMBIGUATION = "disambiguation"  # Should tell similar frameworks apart
    VERSION = "version"  # Should extract the right version


@dataclass(frozen=True)
class ExpectedFramework:
    framework: Framework
    min_confidence: float = 0.3
    should_detect: bool = True
    version: Optional[str] = None


@dataclass(frozen=True)
class ValidationCase:
    name: str
    project_path: str
    expected_ecosystem: LanguageEcosystem
    expected_frameworks: List[ExpectedFramework] = field(default_factory=list)
    case_type: CaseType = CaseType.POSITIVE


@dataclass
class FrameworkAccuracy:
    true_positives: int = 0
    false_positives: int = 0
    true_negatives: int = 0
    false_negatives: int = 0

    @property
    def precision(self) -> float:
        predicted = self.true_positives + self.false_positives
        # No detections at all counts as perfectly precise
        return self.true_positives / predicted if predicted else 1.0

    @property
    def recall(self) -> float:
        actual = self.true_positives + self.false_negatives
        return self.true_positives / actual if actual else 1.0

    @property
    def f1_score(self) -> float:
        total = self.precision + self.recall
        return 2 * self.precision * self.recall / total if total else 0.0

    def record(self, should_detect: bool, was_detected: bool) -> None:
        if should_detect and was_detected:
            self.true_positives += 1
        elif should_detect:
            self.false_negatives += 1
        elif was_detected:
            self.false_positives += 1
        else:
            self.true_negatives += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "true_positives": self.true_positives,
            "false_positives": self.false_positives,
            "true_negatives": self.true_negatives,
            "false_negatives": self.false_negatives,
            "precision": round(self.precision, 4),
            "recall": round(self.recall, 4),
            "f1_score": round(self.f1_score, 4),
        }


@dataclass
class CaseResult:
    name: str
    passed: bool
    issues: List[str] = field(default_factory=list)
    confidence_scores: Dict[Framework, float] = field(default_factory=dict)
    result: Optional[FrameworkDetectionResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "issues": self.issues,
            "confidence_scores": {f.value: c for f, c in self.confidence_scores.items()},
        }


@dataclass
class ValidationReport:
    case_results: List[CaseResult] = field(default_factory=list)
    per_framework: Dict[Framework, FrameworkAccuracy] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.case_results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.case_results if r.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def overall_accuracy(self) -> float:
        return self.passed / self.total if self.total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cases": self.total,
            "passed_cases": self.passed,
            "failed_cases": self.failed,
            "overall_accuracy": round(self.overall_accuracy, 4),
            "per_framework_accuracy": {
                framework.value: stats.to_dict()
                for framework, stats in sorted(self.per_framework.items(), key=lambda i: i[0].value)
            },
            "cases": [r.to_dict() for r in self.case_results],
        }


def _parse_case(data: Dict[str, Any], base_dir: str) -> ValidationCase:
    expected = []
    for item in data.get("expected_frameworks", []):
        framework = Framework.from_name(str(item["framework"]))
        if framework is Framework.UNKNOWN:
            raise ValueError(f"Unknown framework '{item['framework']}' in case {data.get('name')}")
        expected.append(ExpectedFramework(
            framework=framework,
            min_confidence=float(item.get("min_confidence", 0.3)),
            should_detect=bool(item.get("should_detect", True)),
            version=str(item["version"]) if item.get("version") is not None else None,
        ))

    project_path = data["project_path"]
    if not os.path.isabs(project_path):
        project_path = os.path.normpath(os.path.join(base_dir, project_path))

    return ValidationCase(
        name=data["name"],
        project_path=project_path,
        expected_ecosystem=LanguageEcosystem.from_name(data["expected_ecosystem"]),
        expected_frameworks=expected,
        case_type=CaseType(data.get("case_type", CaseType.POSITIVE.value)),
    )


def load_validation_cases(cases_file: str) -> List[ValidationCase]:
    """Load validation cases from YAML; relative project paths resolve against the file's directory."""
    with open(cases_file, 'r') as f:
        data = yaml.safe_load(f) or []

    if isinstance(data, dict):
        data = data.get("cases", [])

    base_dir = os.path.dirname(os.path.abspath(cases_file))
    cases = [_parse_case(item, base_dir) for item in data]
    logger.info(f"Loaded {len(cases)} validation cases from {cases_file}")
    return cases


def check_case(case: ValidationCase, result: FrameworkDetectionResult) -> CaseResult:
    """Compare one detection result with the case's expectations."""
    issues: List[str] = []
    scores: Dict[Framework, float] = {}

    if result.primary_ecosystem != case.expected_ecosystem:
        issues.append(
            f"Expected ecosystem {case.expected_ecosystem.value}, detected {result.primary_ecosystem.value}"
        )

    for expected in case.expected_frameworks:
        detected = result.get(expected.framework)
        scores[expected.framework] = detected.confidence if detected else 0.0
        name = expected.framework.value

        if expected.should_detect and detected is None:
            issues.append(f"Framework {name} should be detected but wasn't found")
        elif expected.should_detect and detected.confidence < expected.min_confidence:
            issues.append(
                f"Framework {name} detected with confidence {detected.confidence:.2f} "
                f"< required {expected.min_confidence:.2f}"
            )
        elif not expected.should_detect and detected is not None:
            issues.append(f"Framework {name} shouldn't be detected but was found with confidence {detected.confidence:.2f}")

        if detected is not None and expected.version is not None and detected.version != expected.version:
            issues.append(f"Framework {name} version {detected.version} != expected {expected.version}")

    return CaseResult(name=case.name, passed=not issues, issues=issues, confidence_scores=scores, result=result)


async def run_validation(engine: Engine, cases: List[ValidationCase]) -> ValidationReport:
    """Run every case through the engine and collect per-case and per-framework results."""
    report = ValidationReport()

    for case in cases:
        logger.info(f"Running validation case: {case.name}")
        try:
            result = await engine.detect(case.project_path)
        except OSError as e:
            logger.error(f"Validation case {case.name} could not be scanned: {e}")
            report.case_results.append(CaseResult(name=case.name, passed=False, issues=[f"Scan failed: {e}"]))
            continue

        case_result = check_case(case, result)
        report.case_results.append(case_result)

        for expected in case.expected_frameworks:
            stats = report.per_framework.setdefault(expected.framework, FrameworkAccuracy())
            stats.record(expected.should_detect, result.get(expected.framework) is not None)

    logger.info(f"Validation finished: {report.passed}/{report.total} cases passed")
    return report
