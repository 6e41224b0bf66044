from typing import List, Optional
import logging

from core.analyzer_registry import AnalyzerRegistry
from core.context import ProjectContext
from models.detection import Evidence, EvidenceType
from models.framework import EvidenceRule


def _default_source(rule: EvidenceRule) -> str:
    extensions = rule.extensions or rule.present_extensions
    return f"{'/'.join(e.lstrip('.') for e in extensions)} files" if extensions else "source files"


def match_source_rule(rule: EvidenceRule, context: ProjectContext) -> Optional[str]:
    """Return the first file path that satisfies the rule, or None.

    A rule matches when any file has one of `present_extensions`, or any file
    with one of `extensions` contains one of `values` or matches `pattern`.
    """
    index = context.index

    if rule.present_extensions:
        for indexed in index.iter_files(rule.present_extensions):
            return indexed.path

    if rule.extensions and rule.values:
        matches = index.find_pattern_matches(rule.extensions, rule.values, rule.ignore_case)
        if matches:
            return matches[0]

    if rule.extensions and rule.pattern:
        found = index.search_regex_in_files(rule.extensions, rule.pattern, rule.ignore_case)
        if found:
            return found[0]

    return None


class SourcePatternAnalyzer:
    evidence_type: EvidenceType

    def __init__(self, rules: List[EvidenceRule]):
        self.rules = rules

    def analyze(self, context: ProjectContext) -> List[Evidence]:
        logger = logging.getLogger(__name__)
        evidence: List[Evidence] = []

        for rule in self.rules:
            matched_path = match_source_rule(rule, context)
            if matched_path is None:
                continue

            logger.debug(f"{type(self).__name__} matched {matched_path} ({rule.description})")
            evidence.append(
                Evidence(
                    evidence_type=self.evidence_type,
                    source=rule.source or _default_source(rule),
                    pattern=rule.description or (rule.pattern or ", ".join(rule.values)),
                    confidence_weight=rule.confidence,
                )
            )

        return evidence


@AnalyzerRegistry.register("import_pattern", EvidenceType.IMPORT_PATTERN)
class ImportPatternAnalyzer(SourcePatternAnalyzer):
    """Import statements (from flask import, import React, from '@nestjs/...')."""
    evidence_type = EvidenceType.IMPORT_PATTERN


@AnalyzerRegistry.register("content_pattern", EvidenceType.CONTENT_PATTERN)
class ContentPatternAnalyzer(SourcePatternAnalyzer):
    """Decorators, annotations and idioms (@app.route, @Controller, JSX)."""
    evidence_type = EvidenceType.CONTENT_PATTERN
