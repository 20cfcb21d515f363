"""Result models for the reconciliation module.

Lightweight dataclasses (not Pydantic) describing the outcome of
validation and repair runs. ``to_dict`` produces the JSON-friendly shape
handed to status surfaces.

Key distinctions:
  - ValidationResult: one check or one category (errors = hard drift,
    warnings = soft drift or checks that could not complete)
  - RepairResult: a ValidationResult plus the group ids confirmed usable
  - ComprehensiveStateSyncResult: one full sweep of a tenant, the cached
    artifact
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class SweepState(Enum):
    """Per-tenant sweep state."""

    IDLE = "idle"
    VALIDATING = "validating"
    REPAIRING = "repairing"
    CACHED = "cached"


@dataclass(frozen=True)
class Diagnostic:
    """A typed diagnostic entry attached to a ValidationResult."""

    key: str
    value: Any


def _dedupe(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


@dataclass
class ValidationResult:
    """Outcome of a validation or repair step.

    Attributes:
        is_valid: False as soon as one error is recorded
        errors: Confirmed inconsistencies requiring attention
        warnings: Soft drift, or an item that could not be verified
        recommendations: Suggested follow-up actions
        diagnostics: Ordered typed (key, value) pairs
        summary: Human summary, set by ``finalize``
        repairs: Repair actions actually performed
    """

    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    summary: str = ""
    repairs: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def add_recommendation(self, message: str) -> None:
        if message not in self.recommendations:
            self.recommendations.append(message)

    def add_diagnostic(self, key: str, value: Any) -> None:
        """Set a diagnostic, replacing an existing entry in place."""
        for index, entry in enumerate(self.diagnostics):
            if entry.key == key:
                self.diagnostics[index] = Diagnostic(key, value)
                return
        self.diagnostics.append(Diagnostic(key, value))

    def get_diagnostic(self, key: str, default: Any = None) -> Any:
        for entry in self.diagnostics:
            if entry.key == key:
                return entry.value
        return default

    def record_repair(self, description: str) -> None:
        self.repairs.append(description)

    def merge(
        self,
        other: "ValidationResult",
        prefix: Optional[str] = None,
        include_diagnostics: bool = True,
    ) -> "ValidationResult":
        """Fold ``other`` into this result.

        With a ``prefix``, messages become ``"<prefix>: <message>"`` and
        diagnostic keys become ``"<prefix>.<key>"``.
        """

        def tag(message: str) -> str:
            return f"{prefix}: {message}" if prefix else message

        for message in other.errors:
            self.add_error(tag(message))
        self.warnings.extend(tag(message) for message in other.warnings)
        for message in other.recommendations:
            self.add_recommendation(message)
        self.repairs.extend(tag(message) for message in other.repairs)
        if not other.is_valid:
            self.is_valid = False
        if include_diagnostics:
            for entry in other.diagnostics:
                key = f"{prefix}.{entry.key}" if prefix else entry.key
                self.add_diagnostic(key, entry.value)
        return self

    def finalize(self, label: str) -> "ValidationResult":
        """Set the human summary and return self."""
        if self.errors:
            self.summary = (
                f"{label}: {self.error_count} error(s), "
                f"{self.warning_count} warning(s)"
            )
        elif self.warnings:
            self.summary = f"{label}: valid with {self.warning_count} warning(s)"
        else:
            self.summary = f"{label}: all checks passed"
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
            "diagnostics": [
                {"key": entry.key, "value": entry.value} for entry in self.diagnostics
            ],
            "summary": self.summary,
            "repairs": list(self.repairs),
            "error_count": self.error_count,
            "warning_count": self.warning_count,
        }


@dataclass
class RepairResult(ValidationResult):
    """Repair outcome plus the directory group ids confirmed to exist."""

    valid_group_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["valid_group_ids"] = list(self.valid_group_ids)
        return data


@dataclass
class ComprehensiveStateSyncResult:
    """One full sweep of a tenant across the three categories."""

    tenant_id: int
    validated_at: datetime
    user_validation: ValidationResult
    group_validation: ValidationResult
    credential_validation: ValidationResult
    critical_issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    recommended_actions: List[str] = field(default_factory=list)
    overall_valid: bool = True
    summary: str = ""
    repairs: List[str] = field(default_factory=list)

    @classmethod
    def from_categories(
        cls,
        tenant_id: int,
        user_validation: ValidationResult,
        group_validation: ValidationResult,
        credential_validation: ValidationResult,
        validated_at: Optional[datetime] = None,
    ) -> "ComprehensiveStateSyncResult":
        categories = (
            ("Users", user_validation),
            ("Groups", group_validation),
            ("Credentials", credential_validation),
        )
        critical: List[str] = []
        warnings: List[str] = []
        recommendations: List[str] = []
        for label, category in categories:
            critical.extend(f"{label}: {message}" for message in category.errors)
            warnings.extend(f"{label}: {message}" for message in category.warnings)
            recommendations.extend(category.recommendations)

        result = cls(
            tenant_id=tenant_id,
            validated_at=validated_at or datetime.now(timezone.utc),
            user_validation=user_validation,
            group_validation=group_validation,
            credential_validation=credential_validation,
            critical_issues=critical,
            warnings=warnings,
            recommended_actions=_dedupe(recommendations),
            overall_valid=all(category.is_valid for _, category in categories),
        )
        result.summary = result._build_summary()
        return result

    @property
    def error_count(self) -> int:
        return len(self.critical_issues)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def total_issues(self) -> int:
        return self.error_count + self.warning_count

    def _build_summary(self) -> str:
        if self.overall_valid and not self.warnings:
            return f"Tenant {self.tenant_id}: state is consistent"
        status = "consistent" if self.overall_valid else "inconsistent"
        return (
            f"Tenant {self.tenant_id}: state is {status} "
            f"({self.error_count} error(s), {self.warning_count} warning(s))"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "validated_at": self.validated_at.isoformat(),
            "overall_valid": self.overall_valid,
            "summary": self.summary,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "total_issues": self.total_issues,
            "critical_issues": list(self.critical_issues),
            "warnings": list(self.warnings),
            "recommended_actions": list(self.recommended_actions),
            "repairs": list(self.repairs),
            "user_validation": self.user_validation.to_dict(),
            "group_validation": self.group_validation.to_dict(),
            "credential_validation": self.credential_validation.to_dict(),
        }
