# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Acknowledgment authorizer.

Two proofs are accepted:
  * session — a verified identity from the auth service, used as-is;
  * token   — an out-of-band acknowledgment token (SMS, voice, chat) plus the
              member it claims to speak for.

Only presence is checked for tokens. Validating the token itself belongs to
whoever issued it.
"""

from dataclasses import dataclass
from typing import Optional

from oncall_core.core.errors import InvalidInputError, UnauthorizedError
from oncall_core.core.logging import get_logger
from oncall_core.metrics.prometheus import AUTHORIZATION_FAILURES
from oncall_core.models.domain import AckChannel, Identity

logger = get_logger(__name__)


@dataclass
class AckRequest:
    session: Optional[Identity] = None
    token: Optional[str] = None
    member_id: Optional[str] = None
    channel: Optional[str] = None


@dataclass
class AckAuthorization:
    member_id: str
    channel: AckChannel
    proof: str


def _channel(value: Optional[str]) -> AckChannel:
    if not value:
        return AckChannel.WEB
    try:
        return AckChannel(value.lower().strip())
    except ValueError:
        valid = [c.value for c in AckChannel]
        raise InvalidInputError(f"channel must be one of {valid}, got '{value}'")


def authorize(request: AckRequest) -> AckAuthorization:
    """Resolve the acknowledging member. Raises UnauthorizedError without a usable proof."""
    channel = _channel(request.channel)

    if request.token:
        if not request.member_id:
            AUTHORIZATION_FAILURES.labels(proof="token").inc()
            logger.info("Acknowledgment rejected: token without member_id")
            raise UnauthorizedError("Invalid acknowledgment token")
        return AckAuthorization(member_id=request.member_id, channel=channel, proof="token")

    if request.session is not None and request.session.member_id:
        return AckAuthorization(member_id=request.session.member_id, channel=channel,
                                proof="session")

    AUTHORIZATION_FAILURES.labels(proof="none").inc()
    logger.info("Acknowledgment rejected: no session and no token")
    raise UnauthorizedError("Unauthorized")
