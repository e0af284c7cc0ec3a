"""Pydantic models for stage submissions.

A submission bundles what the agent produced for one stage together with the
signals of the external tools: the test runner ("N of M tests pass") and the
static type checker.
"""

from pydantic import BaseModel, Field, field_validator, model_validator


class TestRunSummary(BaseModel):
    """Result reported by the test-execution environment."""

    __test__ = False  # not a pytest test class

    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0, description="Collection or setup errors")
    total: int = Field(default=0, ge=0)
    failure_messages: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _total_covers_outcomes(self) -> "TestRunSummary":
        self.total = max(self.total, self.passed + self.failed + self.errors)
        return self

    @property
    def summary(self) -> str:
        return f"{self.passed} of {self.total} tests pass"


class TypeCheckSummary(BaseModel):
    """Result reported by the static-analysis / type-check tool."""

    tool: str = "mypy"
    errors: int = Field(default=0, ge=0)
    warnings: int = Field(default=0, ge=0)

    @property
    def clean(self) -> bool:
        return self.errors == 0


class StageArtifacts(BaseModel):
    """Everything submitted for review at one stage."""

    files: list[str] = Field(default_factory=list, description="Paths in the change-set")
    test_categories: list[str] = Field(
        default_factory=list,
        description="Covered test categories: happy_path, edge_case, error",
    )
    diagrams: list[str] = Field(
        default_factory=list, description="Diagram files or inline mermaid blocks"
    )
    design_document: str = ""
    test_run: TestRunSummary | None = None
    type_check: TypeCheckSummary | None = None
    notes: str = ""

    @field_validator("test_categories", mode="before")
    @classmethod
    def _normalize_categories(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple, set)):
            raise ValueError(f"test_categories must be a list of names, got {type(v).__name__}")
        return [str(c).strip().lower().replace("-", "_").replace(" ", "_") for c in v]
