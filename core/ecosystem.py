"""Primary language ecosystem detection and framework rule dispatch."""
import logging
from collections import defaultdict
from typing import Dict, List, Tuple

from core.context import ProjectContext
from models.framework import FrameworkRule, LanguageEcosystem

logger = logging.getLogger(__name__)

SIGNAL_WEIGHT = 10
DEFAULT_MIXED_SHARE = 0.3

JS_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs")
TS_EXTENSIONS = (".ts", ".tsx")

# Ecosystems that share a language family never make a project Mixed together
FAMILIES = {
    LanguageEcosystem.PYTHON: "python",
    LanguageEcosystem.JAVA: "jvm",
    LanguageEcosystem.JAVASCRIPT: "javascript",
    LanguageEcosystem.TYPESCRIPT: "javascript",
    LanguageEcosystem.DENO: "javascript",
    LanguageEcosystem.RUST: "rust",
    LanguageEcosystem.GO: "go",
}


def ecosystem_scores(context: ProjectContext) -> Dict[LanguageEcosystem, int]:
    """Score each ecosystem by the number of its source files, SIGNAL_WEIGHT points per file."""
    counts = context.index.count_files_by_extension()
    scores: Dict[LanguageEcosystem, int] = defaultdict(int)

    def add(ecosystem: LanguageEcosystem, extensions) -> None:
        total = sum(counts.get(ext, 0) for ext in extensions)
        if total:
            scores[ecosystem] += total * SIGNAL_WEIGHT

    add(LanguageEcosystem.PYTHON, (".py",))
    add(LanguageEcosystem.DENO if context.is_deno_project else LanguageEcosystem.TYPESCRIPT, TS_EXTENSIONS)
    if not (context.has_tsconfig or context.is_deno_project):
        add(LanguageEcosystem.JAVASCRIPT, JS_EXTENSIONS)
    add(LanguageEcosystem.JAVA, (".java",))
    add(LanguageEcosystem.RUST, (".rs",))
    add(LanguageEcosystem.GO, (".go",))

    return dict(scores)


def detect_language_ecosystem(
    context: ProjectContext,
    mixed_share: float = DEFAULT_MIXED_SHARE,
) -> Tuple[LanguageEcosystem, Dict[LanguageEcosystem, int]]:
    """
    Decide the primary ecosystem of a project.

    No signals at all means Mixed. So does a project where two or more
    language families each hold at least `mixed_share` of the total score.
    Otherwise the highest score wins, ties broken alphabetically by name.

    Returns:
        Tuple of (primary ecosystem, per-ecosystem scores)
    """
    scores = ecosystem_scores(context)
    total = sum(scores.values())
    if total == 0:
        logger.info("No language signals found, treating project as Mixed")
        return LanguageEcosystem.MIXED, scores

    family_scores: Dict[str, int] = defaultdict(int)
    for ecosystem, score in scores.items():
        family_scores[FAMILIES[ecosystem]] += score
    significant = [family for family, score in family_scores.items() if score / total >= mixed_share]
    if len(significant) >= 2:
        logger.info(f"Language families {', '.join(sorted(significant))} all significant, project is Mixed")
        return LanguageEcosystem.MIXED, scores

    primary = sorted(scores.items(), key=lambda item: (-item[1], item[0].value))[0][0]
    logger.info(f"Primary ecosystem: {primary.value} (scores: "
                f"{', '.join(f'{e.value}={s}' for e, s in sorted(scores.items(), key=lambda i: i[0].value))})")
    return primary, scores


def dispatch_rules(rules: List[FrameworkRule], ecosystem: LanguageEcosystem) -> List[FrameworkRule]:
    """Rules routed to an ecosystem; Mixed gets every rule, Rust and Go currently none."""
    if ecosystem == LanguageEcosystem.MIXED:
        return list(rules)
    return [rule for rule in rules if ecosystem in rule.dispatch]
