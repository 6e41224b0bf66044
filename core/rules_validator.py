"""
Utility functions to validate and analyze YAML framework rules for duplications and inconsistencies.
"""

import yaml
from typing import List, Dict, Tuple, Any
from collections import defaultdict
import os

from rules.rules_loader import RULES_DIR

VALUE_EVIDENCE_TYPES = ('config_file', 'import_pattern', 'content_pattern')


def load_rules(rules_path: str = None, specific_file: str = None) -> List[Dict[str, Any]]:
    """Load raw YAML framework rules from a directory or specific file, tracking file origins."""
    rules_path = rules_path or os.path.join(RULES_DIR, "frameworks")
    filenames = [specific_file] if specific_file else sorted(os.listdir(rules_path))

    all_rules = []
    for filename in filenames:
        if not filename.endswith(('.yaml', '.yml')):
            continue
        filepath = os.path.join(rules_path, filename)
        if not os.path.exists(filepath):
            continue
        with open(filepath, 'r') as f:
            rules = yaml.safe_load(f)
        if isinstance(rules, list):
            for rule in rules:
                rule['__file__'] = filename
                all_rules.append(rule)

    return all_rules


def detect_duplicate_rules(rules: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Detect framework names defined by more than one rule.

    Args:
        rules: List of rule dictionaries from YAML

    Returns:
        Dictionary with framework names as keys and the duplicate rules as values
    """
    seen = defaultdict(list)
    for rule in rules:
        seen[str(rule.get('name', 'Unknown')).lower()].append(rule)

    return {
        rules_list[0].get('name', 'Unknown'): rules_list
        for rules_list in seen.values()
        if len(rules_list) > 1
    }


def detect_value_overlaps(rules: List[Dict[str, Any]], evidence_type: str) -> Dict[str, List[str]]:
    """
    Detect literal values that several frameworks match on for one evidence type.

    Shared values (e.g. '@Controller' in NestJS and Danet) mean the frameworks
    must be told apart by prerequisites or cross-validation.

    Returns:
        Dictionary with values as keys and list of frameworks as values
    """
    values_map = defaultdict(list)

    for rule in rules:
        framework = rule.get('name', 'Unknown')
        for ev in rule.get('evidence', []):
            if ev.get('type') != evidence_type:
                continue
            for value in ev.get('values') or []:
                if framework not in values_map[value]:
                    values_map[value].append(framework)

    return {
        value: frameworks
        for value, frameworks in values_map.items()
        if len(frameworks) > 1
    }


def detect_config_file_overlaps(rules: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Detect config files whose mere presence counts as evidence for several frameworks.

    Manifests searched for framework-specific values (package.json and the
    like) are not reported.
    """
    files_map = defaultdict(list)

    for rule in rules:
        framework = rule.get('name', 'Unknown')
        for ev in rule.get('evidence', []):
            if ev.get('type') != 'config_file' or ev.get('values'):
                continue
            for filename in ev.get('files') or []:
                if framework not in files_map[filename]:
                    files_map[filename].append(framework)

    return {
        filename: frameworks
        for filename, frameworks in files_map.items()
        if len(frameworks) > 1
    }


def _max_structure_score(checks: List[Dict[str, Any]]) -> float:
    total = 0.0
    for check in checks:
        if 'first_of' in check:
            total += max((float(alt.get('confidence', 0.1)) for alt in check['first_of']), default=0.0)
        else:
            total += float(check.get('confidence', 0.1))
    return total


def max_raw_confidence(rule: Dict[str, Any]) -> float:
    """Highest raw confidence a rule can reach when every evidence entry matches."""
    total = 0.0
    for ev in rule.get('evidence', []):
        if ev.get('type') == 'file_structure':
            total += _max_structure_score(ev.get('checks', []))
        else:
            total += float(ev.get('confidence', 0.2))
    return round(total, 4)


def detect_unreachable_thresholds(rules: List[Dict[str, Any]]) -> Dict[str, Tuple[float, float]]:
    """
    Detect rules whose maximum raw confidence is below their threshold.

    Returns:
        Dictionary with framework names as keys and (max raw, threshold) as values
    """
    unreachable = {}
    for rule in rules:
        threshold = float(rule.get('threshold', 0.3))
        reachable = max_raw_confidence(rule)
        if reachable < threshold:
            unreachable[rule.get('name', 'Unknown')] = (reachable, threshold)
    return unreachable


def detect_all_overlaps(rules: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Detect all types of overlaps: config files and literal values per evidence type.

    Args:
        rules: List of rule dictionaries from YAML

    Returns:
        Dictionary containing all overlap types
    """
    overlaps = {'config_file_overlaps': detect_config_file_overlaps(rules)}
    for evidence_type in VALUE_EVIDENCE_TYPES:
        overlaps[f'{evidence_type}_value_overlaps'] = detect_value_overlaps(rules, evidence_type)
    return overlaps


def print_validation_report(
    rules: List[Dict[str, Any]],
    show_files: bool = True,
    verbose: bool = True
) -> None:
    """
    Print a comprehensive validation report of rules.

    Args:
        rules: List of rule dictionaries from YAML
        show_files: Whether to show file/location information
        verbose: Whether to print detailed information
    """
    print("\n" + "="*70)
    print("RULES VALIDATION REPORT")
    print("="*70)
    print(f"\nTotal Rules: {len(rules)}")

    duplicates = detect_duplicate_rules(rules)
    if duplicates:
        print(f"\nDUPLICATE RULES: {len(duplicates)}")
        for name, rules_list in sorted(duplicates.items()):
            print(f"\n  {name}")
            for rule in rules_list:
                evidence_count = len(rule.get('evidence', []))
                file_info = f" [{rule.get('__file__', 'unknown')}]" if show_files else ""
                print(f"    - {rule.get('name')} ({evidence_count} evidences){file_info}")
    else:
        print("\n✓ No duplicate rules")

    config_overlaps = detect_config_file_overlaps(rules)
    if config_overlaps:
        print(f"\n⚠ CONFIG FILE OVERLAPS: {len(config_overlaps)}")
        for filename, frameworks in sorted(config_overlaps.items()):
            print(f"  '{filename}' -> {', '.join(frameworks)}")
    else:
        print("\n✓ No config file overlaps")

    for evidence_type in VALUE_EVIDENCE_TYPES:
        overlaps = detect_value_overlaps(rules, evidence_type)
        label = evidence_type.replace('_', ' ').upper()
        if overlaps:
            print(f"\n⚠ {label} VALUE OVERLAPS: {len(overlaps)}")
            if verbose:
                for value, frameworks in sorted(overlaps.items()):
                    print(f"  '{value}' -> {', '.join(frameworks)}")
        else:
            print(f"\n✓ No {evidence_type.replace('_', ' ')} value overlaps")

    unreachable = detect_unreachable_thresholds(rules)
    if unreachable:
        print(f"\n⚠ UNREACHABLE THRESHOLDS: {len(unreachable)}")
        for name, (reachable, threshold) in sorted(unreachable.items()):
            print(f"  {name}: max raw {reachable:.2f} < threshold {threshold:.2f}")
    else:
        print("\n✓ Every threshold is reachable")

    total_evidence = sum(len(rule.get('evidence', [])) for rule in rules)
    frameworks = len(set(rule.get('name') for rule in rules))

    print("\nStatistics:")
    print(f"  - Unique Frameworks: {frameworks}")
    print(f"  - Total Evidence Items: {total_evidence}")
    if frameworks:
        print(f"  - Avg Evidence per Framework: {total_evidence / frameworks:.1f}")

    print("\n" + "="*70)


if __name__ == "__main__":
    import sys
    import argparse

    parser = argparse.ArgumentParser(
        description="Validate YAML framework rules for duplications and inconsistencies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate the bundled rules
  python -m core.rules_validator

  # Validate a custom rules directory
  python -m core.rules_validator --rules-dir my_rules/frameworks

  # Combine options
  python -m core.rules_validator --no-files --no-verbose
        """
    )

    parser.add_argument(
        '--rules-dir',
        default=None,
        help='Directory of framework rule files (default: bundled rules/frameworks)'
    )

    parser.add_argument(
        '--no-files',
        action='store_false',
        dest='show_files',
        default=True,
        help='Do not show file information in results'
    )

    parser.add_argument(
        '--no-verbose',
        action='store_false',
        dest='verbose',
        default=True,
        help='Do not show verbose details'
    )

    args = parser.parse_args()

    try:
        rules = load_rules(args.rules_dir)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print_validation_report(rules, show_files=args.show_files, verbose=args.verbose)
