"""Absolute URL synthesis for alert notifications."""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import urlencode, urlsplit

SILENCE_PATH = "/alerting/silence/new"
DASHBOARD_PATH = "/d/{uid}"
RULE_LIST_PATH = "/alerting/list"

# Annotations carrying link metadata rather than display content
DASHBOARD_UID_ANNOTATION = "__dashboardUid__"
PANEL_ID_ANNOTATION = "__panelId__"

LINKABLE_SCHEMES = frozenset({"http", "https"})


def is_http_url(value: object) -> bool:
    """Whether ``value`` is an absolute http(s) URL safe to use as a link target."""
    if not isinstance(value, str) or not value:
        return False
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    return parts.scheme.lower() in LINKABLE_SCHEMES and bool(parts.netloc)


class LinkBuilder:
    """Builds silence, dashboard, panel and rule list links.

    All links are rooted at the external URL the notifications point back
    to. Optional inputs that are missing produce an empty string, never an
    error.
    """

    def __init__(self, external_url: str) -> None:
        """Initialize the builder.

        Args:
            external_url: Public base URL, e.g. ``http://localhost/base``.
        """
        self.external_url = external_url.rstrip("/")

    def _url(self, path: str, query: list[tuple[str, str]] | None = None) -> str:
        url = f"{self.external_url}{path}"
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    def silence_url(self, labels: Mapping[str, str]) -> str:
        """Link to a pre-filled silence form matching the given labels."""
        matchers = ",".join(f"{name}={labels[name]}" for name in sorted(labels))
        return self._url(
            SILENCE_PATH,
            [("alertmanager", "grafana"), ("matchers", matchers)],
        )

    def dashboard_url(self, dashboard_uid: str | None) -> str:
        if not dashboard_uid:
            return ""
        return self._url(DASHBOARD_PATH.format(uid=dashboard_uid))

    def panel_url(self, dashboard_uid: str | None, panel_id: str | None) -> str:
        if not dashboard_uid or not panel_id:
            return ""
        return f"{self.dashboard_url(dashboard_uid)}?{urlencode([('viewPanel', panel_id)])}"

    def rule_url(self) -> str:
        return self._url(RULE_LIST_PATH)

    def alert_page_url(self, status: str) -> str:
        """Link to the alert list filtered by state."""
        return self._url(RULE_LIST_PATH, [("alertState", status), ("view", "state")])
