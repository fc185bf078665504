"""
Client-side synchronization.

A SyncSession mirrors one principal's authorized view of the pipeline.
Change events are treated as signals only: each one triggers a full
refetch of the affected collections. Refetches of the same collection may
resolve out of order, so every request carries an epoch and a result is
applied only if it is newer than the last one applied.
"""

import asyncio
from collections import defaultdict
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Protocol, Tuple

import httpx
import structlog

from internhub.core.security import Role
from internhub.realtime.events import EventKind
from internhub.realtime.notification_router import ClientState, NotificationBadge, route_notification

logger = structlog.get_logger(__name__)

APPLICATIONS = "applications"
REQUESTS = "requests"
INTERVIEWS = "interviews"
OPENINGS = "openings"
SUBSCRIPTIONS = "subscriptions"
AUDIT_LOGS = "audit_logs"

ROLE_COLLECTIONS: Dict[Role, Tuple[str, ...]] = {
    Role.STUDENT: (APPLICATIONS, REQUESTS, INTERVIEWS, OPENINGS, SUBSCRIPTIONS),
    Role.COMPANY: (APPLICATIONS, REQUESTS, INTERVIEWS, OPENINGS),
    Role.ADMIN: (APPLICATIONS, REQUESTS, INTERVIEWS, OPENINGS, AUDIT_LOGS),
}

EVENT_COLLECTIONS: Dict[str, Tuple[str, ...]] = {
    EventKind.APPLICATIONS_CHANGED.value: (APPLICATIONS, REQUESTS, INTERVIEWS),
    EventKind.OPENINGS_CHANGED.value: (OPENINGS,),
    # Subscription changes move a student's opening visibility
    EventKind.ADMIN_CHANGED.value: (SUBSCRIPTIONS, OPENINGS, AUDIT_LOGS),
}


class Fetcher(Protocol):
    async def fetch(self, collection: str) -> List[Dict[str, Any]]:
        ...


class HttpFetcher:
    """Fetches collections from the HTTP API with a bearer token."""

    # collection -> (path, key holding the list in the response body)
    ENDPOINTS: Dict[str, Tuple[str, Optional[str]]] = {
        APPLICATIONS: ("/applications", "applications"),
        REQUESTS: ("/applications/requests", "requests"),
        INTERVIEWS: ("/interviews", "interviews"),
        OPENINGS: ("/openings", "openings"),
        SUBSCRIPTIONS: ("/subscriptions", None),
        AUDIT_LOGS: ("/admin/audit-logs", "logs"),
    }

    def __init__(
        self,
        base_url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"Authorization": f"Bearer {token}"}
        self.client = client
        self.timeout = timeout

    async def fetch(self, collection: str) -> List[Dict[str, Any]]:
        path, key = self.ENDPOINTS[collection]
        url = f"{self.base_url}{path}"
        if self.client is not None:
            response = await self.client.get(url, headers=self.headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self.headers)
        response.raise_for_status()
        body = response.json()
        return body[key] if key else body


class SyncSession:
    """One connected client's cached view plus its notification badge."""

    def __init__(self, role: Role, fetcher: Fetcher, company_id: Optional[str] = None):
        self.role = role
        self.fetcher = fetcher
        self.company_id = company_id
        self.data: Dict[str, List[Dict[str, Any]]] = {}
        self.badge = NotificationBadge()
        self._issued: Dict[str, int] = defaultdict(int)
        self._applied: Dict[str, int] = defaultdict(int)

    @property
    def collections(self) -> Tuple[str, ...]:
        return ROLE_COLLECTIONS[self.role]

    def collections_for(self, event: Mapping[str, Any]) -> Tuple[str, ...]:
        affected = EVENT_COLLECTIONS.get(event.get("kind"), ())
        return tuple(c for c in affected if c in self.collections)

    async def refetch(self, collection: str) -> bool:
        """Fetch one collection; returns False when the result was stale."""
        self._issued[collection] += 1
        epoch = self._issued[collection]
        result = await self.fetcher.fetch(collection)

        if epoch <= self._applied[collection]:
            logger.debug("stale_refetch_discarded", collection=collection, epoch=epoch)
            return False
        self._applied[collection] = epoch
        self.data[collection] = result
        return True

    async def resync(self) -> None:
        """Full refetch of every collection (on connect and reconnect)."""
        await asyncio.gather(*(self.refetch(c) for c in self.collections))

    async def handle_event(self, event: Mapping[str, Any]) -> Optional[str]:
        """Refetch what the event touches, then route the notification."""
        collections = self.collections_for(event)
        if collections:
            await asyncio.gather(*(self.refetch(c) for c in collections))
        return self.badge.update(route_notification(self.role, event, self.client_state()))

    async def consume(self, events: AsyncIterator[Mapping[str, Any]]) -> None:
        await self.resync()
        async for event in events:
            try:
                await self.handle_event(event)
            except httpx.HTTPError as e:
                # The next event triggers another full refetch
                logger.warning("refetch_failed", kind=event.get("kind"), error=str(e))

    def client_state(self) -> ClientState:
        return ClientState(
            subscribed_company_ids={str(s["company_id"]) for s in self.data.get(SUBSCRIPTIONS, [])},
            company_id=self.company_id,
            pending_request=any(
                r.get("request_text") and not r.get("response_text") for r in self.data.get(REQUESTS, [])
            ),
            stages=[a.get("stage") for a in self.data.get(APPLICATIONS, [])],
        )
