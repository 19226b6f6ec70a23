# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Member directory client — inter-service communication.
Resolves display names and team roles from the user service.
Lookups degrade to None on any failure; callers decide the fallback.
"""

from typing import List, Optional

import httpx

from oncall_core.core.config import settings
from oncall_core.core.logging import get_logger

logger = get_logger(__name__)


class DirectoryClient:
    def _get(self, path: str):
        try:
            with httpx.Client(timeout=settings.HTTP_CLIENT_TIMEOUT) as client:
                resp = client.get(f"{settings.DIRECTORY_SERVICE_URL}{path}")
            if resp.status_code == 200:
                return resp.json()
        except Exception as exc:
            logger.warning("Directory service unreachable: %s", exc)
        return None

    def display_name(self, member_id: str) -> Optional[str]:
        body = self._get(f"/api/v1/users/{member_id}")
        return body.get("name") if body else None

    def team_role(self, team_id: str, member_id: str) -> Optional[str]:
        """'admin', 'member', or None when the member is not on the team."""
        body = self._get(f"/api/v1/teams/{team_id}/members/{member_id}")
        return body.get("role") if body else None

    def team_ids_for(self, member_id: str) -> List[str]:
        body = self._get(f"/api/v1/users/{member_id}/teams")
        if not body:
            return []
        return [t["team_id"] for t in body if t.get("team_id")]
