"""Package request router.

Runs the full pipeline for one request: validation, detection, confidence
aggregation, availability filtering, strategy selection, dispatch and result
selection. Every public method returns a ``RouterResponse``; ordinary failure
modes are reported through its error list instead of being raised.
"""

import re
import time
from typing import Any

from pydantic import ValidationError

from pkgrouter.backends.base import (
    TOOL_PACKAGE_INFO,
    TOOL_PACKAGE_README,
    TOOL_SEARCH_PACKAGES,
    Backend,
)
from pkgrouter.backends.registry import ManagerRegistry
from pkgrouter.config import BackendServerConfig, RouterSettings
from pkgrouter.detection.confidence import ConfidenceAggregator
from pkgrouter.detection.context import ContextMatcher, sanitize_hint
from pkgrouter.detection.patterns import PatternMatcher, is_valid_package_name
from pkgrouter.detection.strategy import ExecutionStrategySelector
from pkgrouter.detection.tables import DetectionTables
from pkgrouter.logging import logger
from pkgrouter.models.package import (
    BackendResult,
    ErrorKind,
    ExecutionPlan,
    LookupData,
    ManagerDetection,
    PackageInfoRequest,
    PackageReadmeRequest,
    PackageRequest,
    PackageSearchRequest,
    ResponseMetadata,
    RouterError,
    RouterResponse,
    SearchData,
)
from pkgrouter.routing.dispatch import ToolDispatcher
from pkgrouter.routing.selection import ResultSelector
from pkgrouter.utils.cache import ResponseCache
from pkgrouter.utils.similarity import rank_by_similarity

FALLBACK_THRESHOLD = 0.5
SUGGESTION_SIMILARITY = 0.7
MAX_NAME_SUGGESTIONS = 3

_PLAIN_NAME = re.compile(r"^[a-z0-9-]+$")


def fallback_suggestions(
    package_name: str,
    detections: list[ManagerDetection],
    tables: DetectionTables,
) -> list[str]:
    """Hints for the caller when detection is weak.

    Returns nothing when the best detection is at least 0.5. Otherwise
    suggests adding context hints, scoped/vendor forms for plain names and
    well-known packages with a similar name.
    """
    if detections and max(d.confidence for d in detections) >= FALLBACK_THRESHOLD:
        return []

    suggestions = [
        f'Try searching for "{package_name}" with context hints like "node", "python", "php"'
    ]
    if "/" not in package_name and _PLAIN_NAME.match(package_name):
        suggestions.append(f'Try "@scope/{package_name}" if it\'s a scoped npm package')
        suggestions.append(f'Try "vendor/{package_name}" if it\'s a Composer package')

    known: dict[str, str] = {}
    for manager_id, packages in tables.framework_packages.items():
        for package in packages:
            known.setdefault(package, manager_id)

    ranked = rank_by_similarity(package_name, list(known))
    for candidate, score in ranked[:MAX_NAME_SUGGESTIONS]:
        if score < SUGGESTION_SIMILARITY or candidate == package_name:
            continue
        suggestions.append(f'Did you mean "{candidate}" ({known[candidate]})?')
    return suggestions


class _RequestFailed(Exception):
    """Short-circuits a request with a ready-made response."""

    def __init__(self, response: RouterResponse) -> None:
        super().__init__(response.errors[0].message if response.errors else "request failed")
        self.response = response


class PackageRouter:
    """Route package lookups to the right ecosystem backends.

    Args:
        backend: Backend capability used for availability and tool calls.
        tables: Detection tables (defaults to the built-in tables).
        settings: Thresholds, timeouts and cache limits.
        cache: Response cache; one is created from ``settings`` when omitted.
        server_configs: Configured MCP servers, used for manager listings.
    """

    def __init__(
        self,
        backend: Backend,
        tables: DetectionTables | None = None,
        settings: RouterSettings | None = None,
        cache: ResponseCache | None = None,
        server_configs: dict[str, BackendServerConfig] | None = None,
    ) -> None:
        self.settings = settings or RouterSettings()
        self.tables = tables or DetectionTables.default()
        self.pattern_matcher = PatternMatcher(self.tables)
        self.context_matcher = ContextMatcher(self.tables)
        self.aggregator = ConfidenceAggregator(self.settings)
        self.strategy = ExecutionStrategySelector(self.settings)
        self.selector = ResultSelector()
        self.registry = ManagerRegistry(self.tables, backend, server_configs)
        self.cache = cache or ResponseCache(
            ttl_seconds=self.settings.cache_ttl_seconds,
            max_entries=self.settings.cache_max_entries,
        )
        self.dispatcher = ToolDispatcher(backend, self.settings, self.cache)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(
        self,
        package_name: str,
        context_hints: list[str] | None = None,
        preferred_managers: list[str] | None = None,
        file_paths: list[str] | None = None,
    ) -> list[ManagerDetection]:
        """Score every ecosystem for a package name and its context.

        Returns:
            Detections above the minimum confidence, highest first. The
            ``available`` flag is not set here.
        """
        name_detections = [
            *self.pattern_matcher.detect_exact_match(package_name),
            *self.pattern_matcher.detect_by_name(package_name),
        ]
        context_detections = [
            *self.context_matcher.detect_by_hints(context_hints or [], package_name),
            *self.context_matcher.detect_from_file_patterns(file_paths or []),
        ]
        return self.aggregator.calculate_overall_confidence(
            name_detections, context_detections, preferred_managers or []
        )

    def plan(self, detections: list[ManagerDetection]) -> tuple[list[ManagerDetection], ExecutionPlan]:
        """Mark availability and choose an execution plan.

        Returns:
            The detections with ``available`` set, and the plan built from the
            available ones.
        """
        marked = [
            d.model_copy(update={"available": self.registry.is_available(d.manager_id)})
            for d in detections
        ]
        available = [d for d in marked if d.available]
        return marked, self.strategy.select_strategy(available)

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def package_info(self, arguments: dict[str, Any]) -> RouterResponse:
        """Look up package metadata in the best-matching ecosystem."""
        start = time.perf_counter()
        try:
            request = self._parse(PackageInfoRequest, arguments, start)
        except _RequestFailed as e:
            return e.response
        params = {
            "package_name": request.package_name,
            "include_dependencies": request.include_dependencies,
        }
        return await self._lookup(request, TOOL_PACKAGE_INFO, params, start)

    async def package_readme(self, arguments: dict[str, Any]) -> RouterResponse:
        """Fetch a package README from the best-matching ecosystem."""
        start = time.perf_counter()
        try:
            request = self._parse(PackageReadmeRequest, arguments, start)
        except _RequestFailed as e:
            return e.response
        params: dict[str, Any] = {
            "package_name": request.package_name,
            "include_examples": request.include_examples,
        }
        if request.version:
            params["version"] = request.version
        return await self._lookup(request, TOOL_PACKAGE_README, params, start)

    async def package_search(self, arguments: dict[str, Any]) -> RouterResponse:
        """Search every plausible ecosystem and report all results.

        The response lists every detection and every backend result, an
        aggregate confidence (share of attempted managers that succeeded)
        and fallback suggestions when detection is weak.
        """
        start = time.perf_counter()
        try:
            request = self._parse(PackageSearchRequest, arguments, start)
            detections, plan = self._prepare(request, start)
        except _RequestFailed as e:
            return e.response

        params = {"package_name": request.package_name, "limit": request.limit}
        results = await self.dispatcher.dispatch(plan, TOOL_SEARCH_PACKAGES, params)

        attempted = [r.manager_id for r in results]
        succeeded = [r.manager_id for r in results if r.success]
        errors = self._failure_errors(results)
        if not succeeded:
            errors.insert(0, self._all_failed_error(request.package_name, attempted))

        data = SearchData(
            detected_managers=detections,
            results=results,
            confidence_score=len(succeeded) / len(attempted) if attempted else 0.0,
            fallback_suggestions=fallback_suggestions(request.package_name, detections, self.tables),
        )
        return RouterResponse(
            success=bool(succeeded),
            data=data,
            errors=errors or None,
            metadata=self._metadata(
                start, attempted, succeeded, max(d.confidence for d in detections)
            ),
        )

    def list_managers(self) -> RouterResponse:
        """Every known ecosystem with its connection state, plus overall health."""
        start = time.perf_counter()
        managers = [self.registry.describe(m) for m in self.registry.manager_ids()]
        health = self.registry.health_status()
        health["cache"] = self.cache.stats()
        return RouterResponse(
            success=True,
            data={"managers": managers, "total_count": len(managers), "health": health},
            metadata=self._metadata(start, [], [], 1.0),
        )

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    async def _lookup(
        self,
        request: PackageRequest,
        tool_name: str,
        params: dict[str, Any],
        start: float,
    ) -> RouterResponse:
        try:
            detections, plan = self._prepare(request, start)
        except _RequestFailed as e:
            return e.response

        results = await self.dispatcher.dispatch(plan, tool_name, params)
        attempted = [r.manager_id for r in results]
        succeeded = [r.manager_id for r in results if r.success]
        errors = self._failure_errors(results)

        primary, alternatives = self.selector.select_best(results, detections, request.package_name)
        if primary is None:
            return RouterResponse(
                success=False,
                errors=[self._all_failed_error(request.package_name, attempted), *errors],
                metadata=self._metadata(
                    start, attempted, succeeded, max(d.confidence for d in detections)
                ),
            )

        chosen = primary.result
        logger.info(
            "  %s resolved via %s (score %.3f)", request.package_name, chosen.manager_id, primary.score
        )
        data = LookupData(
            manager=chosen.manager_id,
            confidence_score=primary.confidence,
            payload={
                "package_manager": chosen.manager_id,
                "package_name": request.package_name,
                **(chosen.payload or {}),
            },
            alternative_results=alternatives or None,
            cached=chosen.cached,
        )
        return RouterResponse(
            success=True,
            data=data,
            errors=errors or None,
            metadata=self._metadata(start, attempted, succeeded, primary.confidence),
        )

    def _parse(self, model: type[PackageRequest], arguments: dict[str, Any], start: float) -> Any:
        try:
            request = model.model_validate(arguments)
        except ValidationError as e:
            problems = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            raise _RequestFailed(
                self._failure(
                    ErrorKind.INVALID_INPUT,
                    "Invalid request parameters",
                    {"problems": problems},
                    start,
                )
            ) from e

        if not is_valid_package_name(request.package_name):
            raise _RequestFailed(
                self._failure(
                    ErrorKind.INVALID_INPUT,
                    f"Invalid package name: {request.package_name}",
                    {"package_name": request.package_name},
                    start,
                )
            )

        unknown = [m for m in request.preferred_managers if not self.registry.is_known(m)]
        if unknown:
            raise _RequestFailed(
                self._failure(
                    ErrorKind.INVALID_INPUT,
                    f"Unknown preferred managers: {', '.join(unknown)}",
                    {
                        "unknown_managers": unknown,
                        "supported_managers": sorted(self.registry.manager_ids()),
                    },
                    start,
                )
            )
        return request

    def _prepare(
        self,
        request: PackageRequest,
        start: float,
    ) -> tuple[list[ManagerDetection], ExecutionPlan]:
        detections = self.detect(
            request.package_name,
            request.context_hints,
            request.preferred_managers,
            request.file_paths,
        )
        if not detections:
            details: dict[str, Any] = {
                "package_name": request.package_name,
                "context_hints": [h for h in map(sanitize_hint, request.context_hints) if h],
            }
            if isinstance(request, PackageSearchRequest):
                details["fallback_suggestions"] = fallback_suggestions(
                    request.package_name, [], self.tables
                )
            raise _RequestFailed(
                self._failure(
                    ErrorKind.DETECTION_FAILED,
                    "Could not detect an appropriate package manager",
                    details,
                    start,
                )
            )

        marked, plan = self.plan(detections)
        best = max(d.confidence for d in marked)
        if not plan.candidates:
            raise _RequestFailed(
                self._failure(
                    ErrorKind.NO_BACKEND_AVAILABLE,
                    "No backend available for the detected package managers",
                    {"detected_managers": [d.manager_id for d in marked]},
                    start,
                    detection_confidence=best,
                )
            )

        logger.debug(
            "  %s: %s mode over %s (best %.2f)",
            request.package_name,
            plan.mode.value,
            ", ".join(plan.candidates),
            best,
        )
        return marked, plan

    # ------------------------------------------------------------------
    # Response helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _failure_errors(results: list[BackendResult]) -> list[RouterError]:
        return [
            RouterError(
                manager=r.manager_id,
                error_kind=ErrorKind.BACKEND_CALL_FAILED,
                message=r.error or "Unknown error",
                details={"latency_ms": round(r.latency_ms, 1)},
            )
            for r in results
            if not r.success
        ]

    @staticmethod
    def _all_failed_error(package_name: str, attempted: list[str]) -> RouterError:
        return RouterError(
            error_kind=ErrorKind.ALL_BACKENDS_FAILED,
            message="All package manager lookups failed",
            details={"package_name": package_name, "managers_attempted": attempted},
        )

    @staticmethod
    def _metadata(
        start: float,
        attempted: list[str],
        succeeded: list[str],
        detection_confidence: float,
    ) -> ResponseMetadata:
        return ResponseMetadata(
            execution_time_ms=round((time.perf_counter() - start) * 1000, 1),
            managers_attempted=attempted,
            managers_succeeded=succeeded,
            detection_confidence=detection_confidence,
        )

    def _failure(
        self,
        kind: ErrorKind,
        message: str,
        details: dict[str, Any],
        start: float,
        detection_confidence: float = 0.0,
    ) -> RouterResponse:
        logger.info("  request rejected (%s): %s", kind.value, message)
        return RouterResponse(
            success=False,
            errors=[RouterError(error_kind=kind, message=message, details=details)],
            metadata=self._metadata(start, [], [], detection_confidence),
        )
