from datetime import datetime
from typing import Optional

from fastapi import Request

NOT_REFRESHED = "Not refreshed yet"


class RefreshState:
    """Process-scoped record of the last successful refresh.

    A new instance is created with the application, so the value is lost on
    restart. Only a refresh that completed its upserts calls ``mark_refreshed``.
    """

    def __init__(self) -> None:
        self.last_refreshed_at: Optional[datetime] = None

    @property
    def has_refreshed(self) -> bool:
        return self.last_refreshed_at is not None

    def mark_refreshed(self, when: datetime) -> None:
        self.last_refreshed_at = when

    def status_value(self) -> str:
        if self.last_refreshed_at is None:
            return NOT_REFRESHED
        return self.last_refreshed_at.isoformat()


def get_refresh_state(request: Request) -> RefreshState:
    return request.app.state.refresh_state
