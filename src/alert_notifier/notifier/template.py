"""Notification template rendering.

This module turns a batch of alerts into the view model templates are
executed against and renders the notification title and message with
Jinja2. Templates run in a sandbox and see only the view model; user
templates see the same fields as the bundled ones::

    {% if Alerts.Firing | length > 0 %}
    You have {{ Alerts.Firing | length }} alerts firing.
    {% for alert in Alerts.Firing %} {{ alert.Labels.alertname }} {% endfor %}
    {% endif %}

and may include the bundled ``default.title`` and ``default.message``
templates with ``{% include "default.title" %}``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from datetime import UTC, datetime
from typing import Any

from jinja2 import (
    DictLoader,
    Environment,
    Template,
    TemplateSyntaxError,
    select_autoescape,
)
from jinja2.sandbox import ImmutableSandboxedEnvironment

from alert_notifier.notifier.errors import ConfigurationError, RenderError
from alert_notifier.notifier.fingerprint import fingerprint
from alert_notifier.notifier.layouts import LAYOUTS
from alert_notifier.notifier.links import (
    DASHBOARD_UID_ANNOTATION,
    PANEL_ID_ANNOTATION,
    LinkBuilder,
    is_http_url,
)
from alert_notifier.notifier.models import (
    STATUS_FIRING,
    STATUS_RESOLVED,
    Alert,
    ExtendedAlert,
    ExtendedAlerts,
    KV,
    NotificationGroup,
    common_pairs,
    sorted_values,
)

logger = logging.getLogger(__name__)

# Annotations used only to build links
METADATA_ANNOTATIONS = frozenset({DASHBOARD_UID_ANNOTATION, PANEL_ID_ANNOTATION})

DEFAULT_TITLE = (
    "[{% if Status == 'firing' %}FIRING:{{ Alerts.Firing | length }}"
    "{% if Alerts.Resolved %}, RESOLVED:{{ Alerts.Resolved | length }}{% endif %}"
    "{% else %}RESOLVED:{{ Alerts.Resolved | length }}{% endif %}] "
    "{{ GroupLabels | sorted_values | join(' ') }} "
    "{% if CommonLabels | length > GroupLabels | length %}"
    "({{ CommonLabels | without(GroupLabels) | sorted_values | join(' ') }})"
    "{% endif %}"
)

DEFAULT_MESSAGE = """\
{%- macro alert_list(alerts) -%}
{%- for alert in alerts %}
Labels:
{%- for name, value in alert.Labels | dictsort %}
 - {{ name }} = {{ value }}
{%- endfor %}
{%- if alert.Annotations %}
Annotations:
{%- for name, value in alert.Annotations | dictsort %}
 - {{ name }} = {{ value }}
{%- endfor %}
{%- endif %}
Silence: {{ alert.SilenceURL }}
{%- if alert.DashboardURL %}
Dashboard: {{ alert.DashboardURL }}
{%- endif %}
{%- if alert.PanelURL %}
Panel: {{ alert.PanelURL }}
{%- endif %}
{% endfor %}
{%- endmacro -%}
{%- if Alerts.Firing -%}
**Firing**
{{ alert_list(Alerts.Firing) }}
{%- endif %}
{%- if Alerts.Resolved %}
**Resolved**
{{ alert_list(Alerts.Resolved) }}
{%- endif %}"""

TEXT_TEMPLATES: dict[str, str] = {
    "default.title": DEFAULT_TITLE,
    "default.message": DEFAULT_MESSAGE,
}


def _without(pairs: Mapping[str, str], names: Iterable[str]) -> dict[str, str]:
    """Drop the given keys from a label mapping."""
    excluded = set(names)
    return {k: v for k, v in pairs.items() if k not in excluded}


class TemplateEnvironment(ImmutableSandboxedEnvironment):
    """Sandboxed environment templates are executed in.

    Templates can read the view model but cannot reach Python internals
    or modify the values they are given. Names on label and annotation
    sets resolve to their values before any mapping method.
    """

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        self.filters["sorted_values"] = sorted_values
        self.filters["without"] = _without
        self.tests["http_url"] = is_http_url

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, KV) and attribute in obj:
            return obj[attribute]
        return super().getattr(obj, attribute)


def text_environment() -> Environment:
    """Environment for titles and messages (plain text, no escaping)."""
    return TemplateEnvironment(loader=DictLoader(TEXT_TEMPLATES), autoescape=False)


def layout_environment() -> Environment:
    """Environment for email layouts; HTML layouts escape every interpolated value."""
    return TemplateEnvironment(
        loader=DictLoader(LAYOUTS),
        autoescape=select_autoescape(enabled_extensions=("html",), default=False),
    )


@dataclass(frozen=True)
class RenderedNotification:
    """Rendered title and message of a notification."""

    title: str
    message: str


class TemplateRenderer:
    """Builds notification view models and renders their text.

    The renderer holds no per-call state; the same inputs always produce
    the same output.
    """

    def __init__(self, external_url: str) -> None:
        """Initialize the renderer.

        Args:
            external_url: Base URL generated links are rooted at.
        """
        self.links = LinkBuilder(external_url)
        self._env = text_environment()
        self._title = self._env.get_template("default.title")

    def compile(self, source: str) -> Template | None:
        """Validate and compile a user-supplied message template.

        Args:
            source: Template source; empty means the bundled default layout.

        Returns:
            The compiled template, or None for an empty source.

        Raises:
            ConfigurationError: If the template has a syntax error.
        """
        if not source:
            return None
        try:
            return self._env.from_string(source)
        except TemplateSyntaxError as e:
            raise ConfigurationError(
                f"invalid message template (line {e.lineno}): {e.message}"
            ) from e

    def extend_alert(self, alert: Alert, now: datetime) -> ExtendedAlert:
        """Project an alert onto its rendering view model."""
        labels = KV(alert.labels)
        dashboard_uid = alert.annotations.get(DASHBOARD_UID_ANNOTATION)
        panel_id = alert.annotations.get(PANEL_ID_ANNOTATION)
        return ExtendedAlert(
            Status=alert.status_at(now),
            Labels=labels,
            Annotations=KV(
                (k, v) for k, v in alert.annotations.items() if k not in METADATA_ANNOTATIONS
            ),
            Fingerprint=fingerprint(labels),
            SilenceURL=self.links.silence_url(labels),
            DashboardURL=self.links.dashboard_url(dashboard_uid),
            PanelURL=self.links.panel_url(dashboard_uid, panel_id),
        )

    def build_group(
        self,
        alerts: Iterable[Alert],
        group_labels: Mapping[str, str] | None = None,
        *,
        now: datetime | None = None,
    ) -> NotificationGroup:
        """Aggregate a batch of alerts into a notification group.

        Args:
            alerts: Alerts in delivery order.
            group_labels: Labels the batch was grouped by, if any.
            now: Reference time for firing/resolved status.

        Returns:
            NotificationGroup with alerts in input order.
        """
        now = now or datetime.now(UTC)
        extended = ExtendedAlerts(self.extend_alert(a, now) for a in alerts)
        status = STATUS_FIRING if extended.Firing else STATUS_RESOLVED
        return NotificationGroup(
            Alerts=extended,
            GroupLabels=KV(group_labels or {}),
            CommonLabels=common_pairs(a.Labels for a in extended),
            CommonAnnotations=common_pairs(a.Annotations for a in extended),
            Status=status,
            ExternalURL=self.links.external_url,
            RuleUrl=self.links.rule_url(),
            AlertPageUrl=self.links.alert_page_url(status),
        )

    def render(
        self,
        template: str | Template | None,
        group: NotificationGroup,
    ) -> RenderedNotification:
        """Render the title and message for a notification group.

        Args:
            template: User message template, either source or compiled.
                Empty or None leaves the message empty so the email layout
                lists the alerts itself.
            group: The notification group to render.

        Returns:
            RenderedNotification with title and message.

        Raises:
            RenderError: If the template fails to parse or execute.
        """
        context = {f.name: getattr(group, f.name) for f in fields(group)}
        try:
            if isinstance(template, str):
                template = self._env.from_string(template) if template else None
            title = self._title.render(context)
            message = template.render(context) if template is not None else ""
        except Exception as e:
            logger.error(f"Template rendering failed: {e}")
            raise RenderError(f"failed to render notification template: {e}") from e
        return RenderedNotification(title=title, message=message)
