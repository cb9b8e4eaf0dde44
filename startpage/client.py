"""HTTP client for the RC server, returning explicit results instead of raising."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import requests
from pydantic import ValidationError

from .config import DEFAULT_SERVER_URL
from .models import LinkCandidateModel, LinkDraft
from .rc_codec import RC_SOURCE

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

    from .store import LinkStore

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SyncResult:
    """Success or failure of one round trip, with the reason on failure."""

    ok: bool
    reason: str = ""
    payload: dict[str, object] = field(default_factory=dict)


class RcClient:
    """Talks to ``/api/rc``; callers decide how to fall back on failure."""

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def load(self) -> SyncResult:
        """Fetch the RC file decoded by the server."""
        return self._request("GET", "/api/rc")

    def load_into(self, store: LinkStore) -> SyncResult:
        """Fetch the RC file and replace ``store`` with it on success."""
        result = self.load()
        if not result.ok:
            return result
        raw_links = result.payload.get("links")
        drafts: list[LinkDraft] = []
        for item in raw_links if isinstance(raw_links, list) else []:
            try:
                model = LinkCandidateModel.model_validate(item)
            except ValidationError:
                LOGGER.debug("Ignoring malformed link from server: %r", item)
                continue
            drafts.append(LinkDraft.from_model(model, source=RC_SOURCE))
        count = store.replace_links(drafts)
        return SyncResult(ok=True, payload={**result.payload, "count": count})

    def save(self, content: str) -> SyncResult:
        """Overwrite the RC file with ``content``."""
        return self._request("POST", "/api/rc", json={"content": content})

    def append(self, drafts: Iterable[LinkDraft]) -> SyncResult:
        """Append candidates; the payload carries ``added`` and ``skipped``."""
        links = [draft.to_model().model_dump() for draft in drafts]
        return self._request("POST", "/api/rc/append", json={"links": links})

    def _request(self, method: str, path: str, **kwargs: object) -> SyncResult:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as exc:
            reason = _error_reason(exc.response) or str(exc)
            LOGGER.warning("%s %s failed: %s", method, url, reason)
            return SyncResult(ok=False, reason=reason)
        except requests.RequestException as exc:
            LOGGER.warning("%s %s unreachable: %s", method, url, exc)
            return SyncResult(ok=False, reason=str(exc))

        try:
            payload = response.json()
        except ValueError:
            return SyncResult(ok=False, reason="Server returned a non-JSON response")
        if not isinstance(payload, dict):
            return SyncResult(ok=False, reason="Server returned an unexpected payload")
        if payload.get("success") is False:
            return SyncResult(ok=False, reason=str(payload.get("error", "")), payload=payload)
        return SyncResult(ok=True, payload=payload)


def _error_reason(response: requests.Response | None) -> str:
    if response is None:
        return ""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        details = body.get("details")
        error = body.get("error", f"HTTP {response.status_code}")
        return f"{error}: {details}" if details else str(error)
    return f"HTTP {response.status_code}"
