"""
Validation outcome records.

Failures are data: the evaluator collects ValidationFailure records into a
ValidationResult and never raises for an invalid instance. Hosts that
prefer exceptions call `result.raise_if_invalid()`.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import OperationCancelledError, ValidationFailedError


@dataclass(frozen=True)
class ValidationFailure:
    """
    One failed check.

    Attributes:
        property_name: Display name of the failing member
        error_message: Resolved message
        attempted_value: Value the check saw (after before-validation)
        collection_index: Innermost collection index in item_path
        parent_collection_index: Collection index one level up
        item_path: Positional path, e.g. Items[3].Products[0].OrderId
        origin: Kind of check that failed (its short name)
        error_code: Rule key, when one was configured
        custom_state: Free slot for hosts
    """

    property_name: str
    error_message: str
    attempted_value: Any = None
    collection_index: Optional[int] = None
    parent_collection_index: Optional[int] = None
    item_path: str = ""
    origin: Optional[str] = None
    error_code: Optional[str] = None
    custom_state: Any = None

    @property
    def path(self) -> str:
        return self.item_path or self.property_name

    def describe(self) -> str:
        return f"{self.path}: {self.error_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property_name": self.property_name,
            "error_message": self.error_message,
            "attempted_value": self.attempted_value,
            "collection_index": self.collection_index,
            "parent_collection_index": self.parent_collection_index,
            "item_path": self.item_path,
            "origin": self.origin,
            "error_code": self.error_code,
        }


@dataclass
class ValidationResult:
    """Outcome of validating one instance."""

    model_type: Optional[type] = None
    failures: List[ValidationFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def is_valid(self) -> bool:
        return not self.failures and not self.cancelled

    def errors_by_member(self) -> "OrderedDict[str, List[str]]":
        """Messages grouped by failure path, in failure order."""
        grouped: "OrderedDict[str, List[str]]" = OrderedDict()
        for failure in self.failures:
            grouped.setdefault(failure.path, []).append(failure.error_message)
        return grouped

    def raise_if_invalid(self) -> "ValidationResult":
        """Raise on failures, or on a cancelled run that never finished."""
        if self.failures:
            raise ValidationFailedError(self.model_type, self.failures)
        if self.cancelled:
            type_name = self.model_type.__name__ if self.model_type is not None else "instance"
            raise OperationCancelledError(f"{type_name} was not fully validated")
        return self

    def __bool__(self) -> bool:
        return self.is_valid

    def __len__(self) -> int:
        return len(self.failures)
