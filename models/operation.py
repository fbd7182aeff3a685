"""
models/operation.py
-------------------
Describes a single call issued through the database client.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

INTERNAL_MODEL = "$internal"
INTERNAL_ACTION = "$op"


@dataclass
class Operation:
    """
    Metadata for one intercepted database call.

    Attributes:
        model: Entity/table the call targets, if any.
        action: Client method that issued the call (e.g. 'fetch_all').
        params: Opaque arguments of the call (statement, bind values...).
    """
    model: Optional[str] = None
    action: Optional[str] = None
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def model_name(self) -> str:
        return self.model if self.model is not None else INTERNAL_MODEL

    @property
    def action_name(self) -> str:
        return self.action if self.action is not None else INTERNAL_ACTION

    def __str__(self) -> str:
        return f"{self.model_name}.{self.action_name}"
