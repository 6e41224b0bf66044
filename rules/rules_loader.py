import os
import logging
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from models.framework import (
    AUTO_ECOSYSTEM,
    EvidenceRule,
    Framework,
    FrameworkRule,
    LanguageEcosystem,
    StructureCheck,
    VersionSource,
)

logger = logging.getLogger(__name__)

RULES_DIR = os.path.dirname(os.path.abspath(__file__))
EVIDENCE_TYPES = {"config_file", "import_pattern", "content_pattern", "file_structure"}


@dataclass(frozen=True)
class ConflictRule:
    framework: Framework
    when: str
    factor: float


@dataclass(frozen=True)
class CrossValidationRules:
    conflicts: List[ConflictRule] = field(default_factory=list)
    fullstack_pairs: List[Tuple[Framework, Framework]] = field(default_factory=list)
    fullstack_frameworks: List[Framework] = field(default_factory=list)
    fullstack_boost: float = 1.1
    api_boost: float = 1.05


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    return (str(value),)


def _parse_check(data: Dict[str, Any]) -> StructureCheck:
    if "first_of" in data:
        return StructureCheck(
            confidence=0.0,
            first_of=tuple(_parse_check(item) for item in data["first_of"]),
        )
    return StructureCheck(
        confidence=float(data.get("confidence", 0.1)),
        files=_as_tuple(data.get("file")),
        directories=_as_tuple(data.get("directory")),
    )


def _parse_evidence(item: Dict[str, Any]) -> EvidenceRule:
    return EvidenceRule(
        type=item["type"],
        confidence=float(item.get("confidence", 0.2)),
        description=item.get("description"),
        source=item.get("source"),
        files=_as_tuple(item.get("files")),
        extensions=_as_tuple(item.get("extensions")),
        values=_as_tuple(item.get("values")),
        pattern=item.get("pattern"),
        present_extensions=_as_tuple(item.get("present_extensions")),
        ignore_case=bool(item.get("ignore_case", False)),
        checks=tuple(_parse_check(c) for c in item.get("checks", [])),
    )


def parse_framework_rule(rule_data: Dict[str, Any], origin: str = "<memory>") -> Optional[FrameworkRule]:
    """Build a FrameworkRule from one YAML entry; None (with a warning) if invalid."""
    if not all(k in rule_data for k in ["name", "dispatch", "evidence"]):
        logger.warning(f"Skipping invalid rule in {origin}: {rule_data.get('name', rule_data)}")
        return None

    framework = Framework.from_name(rule_data["name"])
    if framework is Framework.UNKNOWN:
        logger.warning(f"Skipping rule for unknown framework '{rule_data['name']}' in {origin}")
        return None

    try:
        dispatch = tuple(LanguageEcosystem.from_name(e) for e in rule_data["dispatch"])
        ecosystem = rule_data.get("ecosystem", AUTO_ECOSYSTEM)
        if ecosystem != AUTO_ECOSYSTEM:
            ecosystem = LanguageEcosystem.from_name(ecosystem).value
    except ValueError as e:
        logger.warning(f"Skipping rule {framework.value} in {origin}: {e}")
        return None

    evidence_rules = []
    for evidence_item in rule_data["evidence"]:
        if evidence_item.get("type") not in EVIDENCE_TYPES:
            logger.warning(f"Skipping evidence of unknown type '{evidence_item.get('type')}' for {framework.value}")
            continue
        evidence_rules.append(_parse_evidence(evidence_item))

    versions = [
        VersionSource(source=v["source"], package=str(v["package"]))
        for v in rule_data.get("version", [])
        if "source" in v and "package" in v
    ]

    return FrameworkRule(
        framework=framework,
        dispatch=dispatch,
        ecosystem=ecosystem,
        evidence_rules=evidence_rules,
        threshold=float(rule_data.get("threshold", 0.3)),
        requires=rule_data.get("requires"),
        versions=versions,
        api_capable=bool(rule_data.get("api_capable", False)),
    )


def load_rules(rules_dir: Optional[str] = None) -> List[FrameworkRule]:
    """
    Loads framework detection rules from all .yaml files in rules_dir/frameworks.

    Files are read in name order so the rule table (and therefore evidence and
    result order) is the same on every run.
    """
    frameworks_dir = os.path.join(rules_dir or RULES_DIR, "frameworks")
    rules: List[FrameworkRule] = []
    seen = set()

    for filename in sorted(os.listdir(frameworks_dir)):
        if not (filename.endswith(".yaml") or filename.endswith(".yml")):
            continue
        filepath = os.path.join(frameworks_dir, filename)
        with open(filepath, "r") as f:
            rules_data = yaml.safe_load(f)
        if not rules_data:
            continue

        for rule_data in rules_data:
            rule = parse_framework_rule(rule_data, origin=filename)
            if rule is None:
                continue
            if rule.framework in seen:
                logger.warning(f"Duplicate rule for {rule.name} in {filename}, keeping the first one")
                continue
            seen.add(rule.framework)
            rules.append(rule)

    logger.debug(f"Loaded {len(rules)} framework rules from {frameworks_dir}")
    return rules


def load_cross_validation_rules(rules_dir: Optional[str] = None) -> CrossValidationRules:
    """Load conflict and fusion rules; a missing file means no adjustments."""
    filepath = os.path.join(rules_dir or RULES_DIR, "cross_validation.yaml")
    if not os.path.exists(filepath):
        logger.warning(f"No cross-validation rules at {filepath}")
        return CrossValidationRules()

    with open(filepath, "r") as f:
        data = yaml.safe_load(f) or {}

    conflicts = []
    for item in data.get("conflicts", []):
        framework = Framework.from_name(item.get("framework", ""))
        if framework is Framework.UNKNOWN or "when" not in item:
            logger.warning(f"Skipping invalid conflict rule: {item}")
            continue
        conflicts.append(ConflictRule(framework=framework, when=item["when"], factor=float(item.get("factor", 1.0))))

    pairs = []
    for pair in data.get("fullstack_pairs", []):
        if len(pair) != 2:
            logger.warning(f"Skipping invalid fullstack pair: {pair}")
            continue
        pairs.append((Framework.from_name(pair[0]), Framework.from_name(pair[1])))

    return CrossValidationRules(
        conflicts=conflicts,
        fullstack_pairs=pairs,
        fullstack_frameworks=[Framework.from_name(n) for n in data.get("fullstack_frameworks", [])],
        fullstack_boost=float(data.get("fullstack_boost", 1.1)),
        api_boost=float(data.get("api_boost", 1.05)),
    )
