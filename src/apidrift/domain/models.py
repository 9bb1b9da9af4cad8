from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
Severity = Literal["HIGH", "MEDIUM", "LOW"]
DivergenceType = Literal[
    "missing_endpoint",
    "extra_endpoint",
    "method_mismatch",
    "schema_mismatch",
    "missing_field",
    "type_mismatch",
    "validation_missing",
    "minor_difference",
]

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE")
SEVERITY_RANK: dict[str, int] = {"HIGH": 3, "MEDIUM": 2, "LOW": 1}


class ContractEndpoint(BaseModel):
    """One operation declared by the contract document."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str
    expected_request_fields: tuple[str, ...] = ()
    expected_response_fields: tuple[str, ...] = ()
    required_fields: tuple[str, ...] = ()
    operation_id: Optional[str] = None
    summary: str = ""


class ObservedEndpoint(BaseModel):
    """One route found while scanning implementation source."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str
    source_location: str = ""
    handler_name: str = ""
    snippet: Optional[str] = None


class Divergence(BaseModel):
    type: DivergenceType
    details: str = ""
    severity: Severity
    label: Optional[str] = None  # oracle's own type string, when it differed


class ApiRecord(BaseModel):
    method: HttpMethod
    path: str
    expected_request_fields: list[str] = Field(default_factory=list)
    expected_response_fields: list[str] = Field(default_factory=list)
    required_fields: list[str] = Field(default_factory=list)
    implemented: bool = False
    source_location: Optional[str] = None
    divergences: list[Divergence] = Field(default_factory=list)

    @property
    def severity(self) -> Optional[Severity]:
        if not self.divergences:
            return None
        return max((d.severity for d in self.divergences), key=SEVERITY_RANK.__getitem__)


class Summary(BaseModel):
    total_apis: int = 0
    high_severity: int = 0
    medium_severity: int = 0
    low_severity: int = 0
    missing_endpoints: int = 0
    extra_endpoints: int = 0


class TestCase(BaseModel):
    __test__ = False  # keep pytest from collecting this model

    model_config = ConfigDict(populate_by_name=True)

    name: str
    method: str
    path: str
    request_body: Any = Field(default=None, alias="requestBody")
    expected_status: int = Field(default=200, alias="expectedStatus")


class DivergenceReport(BaseModel):
    apis: list[ApiRecord] = Field(default_factory=list)
    test_cases: list[TestCase] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, by_alias=True)


class ReconciliationResult(BaseModel):
    """What the fingerprint cache stores for one (contract, source) pair."""

    fingerprint: str
    report: DivergenceReport
    oracle_text: Optional[str] = None
