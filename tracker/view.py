"""Map fetch outcomes onto what a screen should show."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from shared.fetch_result import FetchResult


class ViewState(str, enum.Enum):
    LOADING = "loading"
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class DataView:
    state: ViewState
    data: Any = None
    message: str | None = None


def view_for(result: FetchResult | None) -> DataView:
    """LOADING before any result, DEGRADED with a banner message, FAILED with a retry message."""
    if result is None:
        return DataView(ViewState.LOADING)
    if result.is_ok:
        return DataView(ViewState.OK, data=result.value)
    if result.is_degraded:
        return DataView(ViewState.DEGRADED, data=result.value, message=result.reason)
    return DataView(ViewState.FAILED, message=result.reason or "Request failed")
