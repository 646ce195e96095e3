"""Data models for detection, routing and tool responses.

Pydantic models shared by the detection core, the dispatcher and the MCP
handlers. Everything here is request-scoped; nothing is persisted.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ReasonKind(str, Enum):
    """Kind of evidence behind a detection."""

    EXACT_NAME_MATCH = "exact_name_match"
    NAME_PATTERN_MATCH = "name_pattern_match"
    FILE_PATTERN = "file_pattern"
    KEYWORD_HINT = "keyword_hint"
    FRAMEWORK_HINT = "framework_hint"
    USER_PREFERENCE = "user_preference"


class ExecutionMode(str, Enum):
    """How many backends a request fans out to."""

    SINGLE = "single"
    LIMITED = "limited"
    ALL = "all"


class ErrorKind(str, Enum):
    """Error taxonomy surfaced in responses."""

    INVALID_INPUT = "invalid_input"
    DETECTION_FAILED = "detection_failed"
    NO_BACKEND_AVAILABLE = "no_backend_available"
    BACKEND_CALL_FAILED = "backend_call_failed"
    ALL_BACKENDS_FAILED = "all_backends_failed"


class DetectionReason(BaseModel):
    """One atomic piece of evidence for an ecosystem."""

    kind: ReasonKind = Field(description="Kind of evidence")
    description: str = Field(description="Human-readable explanation")
    weight: float = Field(ge=0.0, le=1.0, description="Contribution weight (0-1)")

    model_config = {"frozen": True}


class ManagerDetection(BaseModel):
    """A candidate ecosystem with its confidence and supporting evidence."""

    manager_id: str = Field(description="Ecosystem identifier (e.g., 'npm')")
    confidence: float = Field(
        ge=0.0,
        description=(
            "Estimated likelihood. Final detections are clamped to [0, 1]; raw "
            "context sums may exceed 1 before aggregation"
        ),
    )
    reasons: list[DetectionReason] = Field(default_factory=list)
    available: bool = Field(default=True, description="Backend reachable for this ecosystem")


class ExecutionPlan(BaseModel):
    """Which backends to query for one request, and whether concurrently."""

    mode: ExecutionMode
    candidates: list[str] = Field(default_factory=list)
    parallel: bool = False


class BackendResult(BaseModel):
    """Outcome of one backend tool invocation."""

    manager_id: str
    success: bool
    payload: dict[str, Any] | None = None
    error: str | None = None
    latency_ms: float = 0.0
    cached: bool = False


class ScoredResult(BaseModel):
    """A successful backend result with its selection score breakdown."""

    result: BackendResult
    score: float
    confidence: float
    completeness: float
    speed_score: float


class AlternativeResult(BaseModel):
    """A non-chosen successful result, ranked by name similarity."""

    manager_id: str
    package_name: str
    similarity_score: float = Field(ge=0.0, le=1.0)
    brief_info: str


class RouterError(BaseModel):
    """A taxonomy-tagged error entry."""

    manager: str | None = None
    error_kind: ErrorKind
    message: str
    details: dict[str, Any] | None = None


class ResponseMetadata(BaseModel):
    """Execution metadata attached to every response."""

    execution_time_ms: float = 0.0
    managers_attempted: list[str] = Field(default_factory=list)
    managers_succeeded: list[str] = Field(default_factory=list)
    detection_confidence: float = 0.0


class LookupData(BaseModel):
    """Primary result of an info/readme lookup."""

    manager: str
    confidence_score: float
    payload: dict[str, Any]
    alternative_results: list[AlternativeResult] | None = None
    cached: bool = False


class SearchData(BaseModel):
    """Aggregated result of a package search."""

    detected_managers: list[ManagerDetection]
    results: list[BackendResult]
    confidence_score: float
    fallback_suggestions: list[str] = Field(default_factory=list)


class RouterResponse(BaseModel):
    """Structured response returned for every tool call, including failures."""

    success: bool
    data: LookupData | SearchData | dict[str, Any] | None = None
    errors: list[RouterError] | None = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


# =============================================================================
# Request models
# =============================================================================


class PackageRequest(BaseModel):
    """Fields shared by every package lookup request."""

    package_name: str = Field(min_length=1, max_length=214)
    context_hints: list[str] = Field(default_factory=list, max_length=20)
    preferred_managers: list[str] = Field(default_factory=list)
    file_paths: list[str] = Field(default_factory=list, max_length=50)

    model_config = {"extra": "ignore"}


class PackageInfoRequest(PackageRequest):
    """Arguments of smart_package_info."""

    include_dependencies: bool = False


class PackageReadmeRequest(PackageRequest):
    """Arguments of smart_package_readme."""

    version: str | None = Field(default=None, max_length=100)
    include_examples: bool = True


class PackageSearchRequest(PackageRequest):
    """Arguments of smart_package_search."""

    limit: int = Field(default=10, ge=1, le=100)
