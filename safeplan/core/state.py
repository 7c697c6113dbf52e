from __future__ import annotations

import uuid
from typing import Any, Dict, Optional
from typing_extensions import TypedDict
from dataclasses import dataclass, field


class BaseGraphState(TypedDict, total=False):
    """Base state shared by every pipeline graph"""
    request_id: str
    raw_input: Dict[str, Any]
    user_id: Optional[str]
    warnings: list
    audit: Dict[str, Any]


@dataclass
class BaseResult:
    """Base result returned by every pipeline"""
    request_id: str
    warnings: list = field(default_factory=list)
    audit: Dict[str, Any] = field(default_factory=lambda: {"events": []})


def generate_request_id() -> str:
    """Generate unique request ID"""
    return str(uuid.uuid4())
