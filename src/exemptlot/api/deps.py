"""Request-scoped access to the services built at startup."""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field

from fastapi import HTTPException, Request

from exemptlot.core.types import UnknownPolicy
from exemptlot.pipeline.runner import AssessmentSession, OverlayResolver
from exemptlot.retrieval.overlays import lookup_overlay_snapshot
from exemptlot.storage.history import HistoryRepository
from exemptlot.storage.sites import SiteCatalog

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the routes need, wired once in the app lifespan."""

    catalog: SiteCatalog
    history: HistoryRepository
    unknown_policy: UnknownPolicy = UnknownPolicy.PASS
    resolver: OverlayResolver = lookup_overlay_snapshot
    max_sessions: int = 1000
    # Least recently used first
    sessions: OrderedDict[str, AssessmentSession] = field(default_factory=OrderedDict)

    def session(self, session_id: str | None) -> AssessmentSession:
        """The caller's assessment session, or a throwaway one for one-off runs."""
        if session_id and session_id in self.sessions:
            self.sessions.move_to_end(session_id)
            return self.sessions[session_id]
        session = AssessmentSession(
            history=self.history,
            resolver=self.resolver,
            unknown_policy=self.unknown_policy,
        )
        if session_id:
            self.sessions[session_id] = session
            while len(self.sessions) > self.max_sessions:
                evicted, _ = self.sessions.popitem(last=False)
                logger.debug("Evicted assessment session %s", evicted)
        return session


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return services
