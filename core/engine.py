import asyncio
import copy
import logging
from typing import List, Optional, Tuple

from core.cache import fingerprint, get_cache
from core.config import DetectorConfig
from core.context import ProjectContext
from core.detection_aggregator import DetectionAggregator
from core.ecosystem import detect_language_ecosystem, dispatch_rules
from core.framework_analyzer import FrameworkAnalyzer

# Import all evidence analyzers to trigger @AnalyzerRegistry.register decorators.
# Import order is evidence order: config files, imports, content, structure.
import analyzers.config_files
import analyzers.source_patterns
import analyzers.structure

from models.detection import FrameworkDetectionResult, RawDetection
from models.framework import Framework, FrameworkRule, LanguageEcosystem
from rules.rules_loader import CrossValidationRules, load_cross_validation_rules, load_rules
from scan.project_index import ProjectIndex


class Engine:
    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        rules: Optional[List[FrameworkRule]] = None,
        cross_rules: Optional[CrossValidationRules] = None,
    ):
        """Initialize the engine with the framework rule table.

        Args:
            config: Detector configuration (defaults when omitted)
            rules: Framework rules; loaded from config.rules_dir when omitted
            cross_rules: Conflict and fusion rules; loaded from config.rules_dir when omitted
        """
        self.logger = logging.getLogger(__name__)
        self.config = config or DetectorConfig()

        all_rules = rules if rules is not None else load_rules(self.config.rules_dir)
        excluded = set()
        for name in self.config.exclude_frameworks:
            framework = Framework.from_name(name)
            if framework is Framework.UNKNOWN:
                self.logger.warning(f"Cannot exclude unknown framework '{name}'")
            else:
                excluded.add(framework)
        self.rules = [r for r in all_rules if r.framework not in excluded]
        self.logger.info(f"Loaded {len(self.rules)} framework rules")
        if excluded:
            self.logger.info(f"Excluded frameworks: {', '.join(sorted(f.value for f in excluded))}")

        self.cross_rules = (
            cross_rules if cross_rules is not None else load_cross_validation_rules(self.config.rules_dir)
        )
        self.cache = get_cache() if self.config.cache_enabled else None

    async def detect(self, project_path: str) -> FrameworkDetectionResult:
        """Detect the frameworks used by the project at project_path.

        Raises FileNotFoundError, NotADirectoryError or PermissionError when
        the project root cannot be scanned.
        """
        logger = logging.getLogger(__name__)
        logger.info(f"Scanning {project_path}")

        # 1. Single walk over the project tree
        index = ProjectIndex.build(
            project_path,
            ignore_dirs=self.config.effective_ignore_dirs,
            max_file_size=self.config.max_file_size,
        )

        cache_key = None
        if self.cache is not None:
            cache_key = fingerprint(index, self.rules, extra=repr(self.config))
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Using cached result for {index.root}")
                return copy.deepcopy(cached)

        # 2. Project facts
        context = ProjectContext.from_index(index)

        # 3. Ecosystem routing
        ecosystem, _ = detect_language_ecosystem(context, self.config.mixed_ecosystem_share)
        dispatched = dispatch_rules(self.rules, ecosystem)
        if not dispatched:
            logger.info(f"No framework rules for the {ecosystem.value} ecosystem")

        # 4. Per-framework analysis, concurrently
        raw_detections = await self.analyze_context(context, dispatched)

        # 5. One aggregation pass after fan-in
        detected = DetectionAggregator.aggregate(
            raw_detections,
            context,
            self.cross_rules,
            mixed=ecosystem == LanguageEcosystem.MIXED,
        )
        result = FrameworkDetectionResult(
            primary_ecosystem=ecosystem,
            detected_frameworks=detected,
            confidence_summary={d.framework: d.confidence for d in detected},
        )
        logger.info(
            f"Detected {len(detected)} frameworks"
            + (f": {', '.join(d.framework.value for d in detected)}" if detected else "")
        )

        if cache_key is not None:
            self.cache.set(cache_key, copy.deepcopy(result), ttl_seconds=self.config.cache_ttl_seconds)
        return result

    async def analyze_context(self, context: ProjectContext, rules: List[FrameworkRule]) -> List[RawDetection]:
        logger = logging.getLogger(__name__)
        analyzer_timeout = self.config.analyzer_timeout

        async def run_analyzer(analyzer: FrameworkAnalyzer) -> Tuple[str, Optional[RawDetection]]:
            logger.debug(f"Running {analyzer.name} analyzer")
            try:
                # Index scans block, so each evaluation runs in a worker thread
                result = await asyncio.wait_for(
                    asyncio.to_thread(analyzer.evaluate, context),
                    timeout=analyzer_timeout,
                )
                if result:
                    logger.debug(f"{analyzer.name} analyzer found {len(result.evidence)} evidence items")
                return analyzer.name, result
            except asyncio.TimeoutError:
                logger.warning(f"{analyzer.name} analyzer timed out after {analyzer_timeout}s")
                return analyzer.name, None
            except Exception as e:
                logger.error(f"Error in {analyzer.name} analyzer: {e}", exc_info=True)
                return analyzer.name, None

        # Run all analyzers concurrently; gather keeps rule order
        tasks = [run_analyzer(FrameworkAnalyzer(rule)) for rule in rules]
        results = await asyncio.gather(*tasks)

        return [detection for _, detection in results if detection is not None]


def detect_frameworks(project_path: str, config: Optional[DetectorConfig] = None) -> FrameworkDetectionResult:
    """Synchronous entry point: run one detection with a fresh event loop."""
    return asyncio.run(Engine(config).detect(project_path))
