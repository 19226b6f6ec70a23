# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""HTTP client to verify caller sessions against the auth service."""
from typing import Optional

import httpx

from oncall_core.core.config import settings
from oncall_core.core.logging import get_logger
from oncall_core.models.domain import Identity

logger = get_logger(__name__)


class AuthClient:
    """Session verification. Anything other than a clean 200 means "not verified"."""

    def verify(self, authorization: Optional[str]) -> Optional[Identity]:
        if not authorization:
            return None
        try:
            with httpx.Client(timeout=settings.HTTP_CLIENT_TIMEOUT) as client:
                resp = client.post(
                    f"{settings.AUTH_SERVICE_URL}/api/v1/auth/verify",
                    headers={"Authorization": authorization},
                )
            if resp.status_code != 200:
                return None
            body = resp.json()
            if not body.get("success") or not body.get("member_id"):
                return None
            return Identity(member_id=body["member_id"], email=body.get("email"))
        except Exception as exc:
            logger.warning("Auth service unreachable: %s", exc)
        return None
