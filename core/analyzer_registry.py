"""Dynamic evidence analyzer registration system."""
import logging
from typing import Dict, Type, List, Set

from models.detection import EvidenceType
from models.framework import EvidenceRule

logger = logging.getLogger(__name__)


class AnalyzerRegistry:
    """Registry mapping rule evidence types to the analyzers that evaluate them."""

    _analyzers: Dict[str, Type] = {}
    _order: List[str] = []  # Preserve registration order
    _evidence_types: Dict[str, EvidenceType] = {}

    @classmethod
    def register(cls, name: str, evidence_type: EvidenceType):
        """Decorator to register an evidence analyzer class.

        Args:
            name: Rule type handled by the analyzer (e.g., "config_file")
            evidence_type: Category of the Evidence items it produces

        Example:
            @AnalyzerRegistry.register("config_file", EvidenceType.CONFIG_FILE)
            class ConfigFileAnalyzer:
                def __init__(self, rules: List[EvidenceRule]):
                    self.rules = rules

                def analyze(self, context: ProjectContext) -> List[Evidence]:
                    ...
        """
        if not isinstance(evidence_type, EvidenceType):
            raise ValueError(f"evidence_type must be an EvidenceType, got {evidence_type}")

        def decorator(analyzer_class: Type):
            if name in cls._analyzers:
                logger.warning(f"Analyzer '{name}' already registered, overwriting")
            else:
                cls._order.append(name)

            cls._analyzers[name] = analyzer_class
            cls._evidence_types[name] = evidence_type
            logger.debug(f"Registered analyzer: {name} ({evidence_type.value}) -> {analyzer_class.__name__}")
            return analyzer_class
        return decorator

    @classmethod
    def get_all_names(cls) -> List[str]:
        """Get names of all registered analyzers in registration order."""
        return cls._order.copy()

    @classmethod
    def get_evidence_type(cls, name: str) -> EvidenceType:
        return cls._evidence_types[name]

    @classmethod
    def get_analyzer_class(cls, name: str) -> Type:
        """Get analyzer class by name."""
        return cls._analyzers.get(name)

    @classmethod
    def instantiate_all(cls, rules: List[EvidenceRule], exclude: Set[str] = None) -> Dict[str, object]:
        """Instantiate registered analyzers, each with the evidence rules of its type.

        Args:
            rules: Evidence rules of one framework
            exclude: Set of analyzer names to skip

        Returns:
            Dictionary mapping analyzer name to instantiated analyzer object,
            only for analyzers that received at least one rule
        """
        exclude = exclude or set()
        instances = {}

        for name in cls._order:
            if name in exclude:
                continue

            filtered_rules = filter_by_rule_types(rules, {name})
            if not filtered_rules:
                continue

            instances[name] = cls._analyzers[name](filtered_rules)

        return instances

    @classmethod
    def clear(cls):
        """Clear all registered analyzers (useful for testing)."""
        cls._analyzers.clear()
        cls._order.clear()
        cls._evidence_types.clear()


def filter_by_rule_types(rules: List[EvidenceRule], allowed_types: Set[str]) -> List[EvidenceRule]:
    """Helper to keep only evidence rules of the allowed types, in their original order."""
    return [r for r in rules if r.type in allowed_types]
