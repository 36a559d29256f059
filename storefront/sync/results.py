"""Results returned across the UI boundary."""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from storefront.errors import StorefrontError


@dataclass
class MutationResult:
    """Outcome of an engine operation; expected failures never raise."""
    success: bool
    reason: Optional[str] = None  # out_of_stock | not_found | unavailable
    notice: Optional[str] = None  # e.g. clamped_to_stock on a successful add
    message: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, notice: Optional[str] = None, **data: Any) -> "MutationResult":
        return cls(success=True, notice=notice, data=data)

    @classmethod
    def failed(cls, error: StorefrontError) -> "MutationResult":
        return cls(success=False, reason=error.reason, message=error.message)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "reason": self.reason,
            "notice": self.notice,
            "message": self.message,
            **self.data,
        }


@dataclass
class Prepared:
    """What a queued operation produced: its result and the write to await, if any."""
    result: MutationResult
    write: Optional[asyncio.Task] = None
