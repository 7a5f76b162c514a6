"""Data models for the notifier module.

View-model classes (``ExtendedAlert``, ``ExtendedAlerts``,
``NotificationGroup``) keep the capitalized field names user templates
reference, e.g. ``{{ Alerts.Firing }}`` or ``{{ alert.Labels.severity }}``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

STATUS_FIRING = "firing"
STATUS_RESOLVED = "resolved"


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected an ISO 8601 timestamp, got {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def _string_pairs(data: Mapping[str, Any], key: str) -> dict[str, str]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{key} must be an object, got {type(value).__name__}")
    return {str(k): str(v) for k, v in value.items()}


class KV(Mapping[str, str]):
    """Read-only label or annotation set.

    Template environments look names up here before mapping methods, so a
    label called ``items`` is reachable as ``{{ alert.Labels.items }}``.
    """

    __slots__ = ("_pairs",)

    def __init__(self, pairs: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> None:
        self._pairs = dict(pairs)

    def __getitem__(self, name: str) -> str:
        return self._pairs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return repr(self._pairs)


@dataclass(frozen=True)
class Alert:
    """A single alert as received from the alert evaluator.

    Attributes:
        labels: Identifying labels; the fingerprint is derived from these.
        annotations: Descriptive annotations (summary, runbook_url, ...).
        starts_at: When the alert started firing.
        ends_at: When the alert resolved, or is expected to resolve.
        generator_url: Link back to the rule that produced the alert.
    """

    labels: Mapping[str, str] = field(default_factory=dict)
    annotations: Mapping[str, str] = field(default_factory=dict)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    generator_url: str = ""

    def status_at(self, now: datetime) -> str:
        """Return the alert status as of ``now``."""
        if self.ends_at is not None and self.ends_at <= now:
            return STATUS_RESOLVED
        return STATUS_FIRING

    @property
    def status(self) -> str:
        """Either ``firing`` or ``resolved``."""
        return self.status_at(datetime.now(UTC))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Alert:
        """Build an alert from its JSON form (``labels``, ``annotations``,
        ``startsAt``, ``endsAt``, ``generatorURL``).

        Raises:
            ValueError: If the alert is not an object or a field has the wrong type.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"alert must be an object, got {type(data).__name__}")
        return cls(
            labels=_string_pairs(data, "labels"),
            annotations=_string_pairs(data, "annotations"),
            starts_at=_parse_time(data.get("startsAt")),
            ends_at=_parse_time(data.get("endsAt")),
            generator_url=str(data.get("generatorURL") or ""),
        )


@dataclass(frozen=True)
class ExtendedAlert:
    """Rendering-facing projection of an alert.

    Annotations exclude link metadata keys; links are absolute URLs or
    empty strings.
    """

    Status: str
    Labels: KV
    Annotations: KV
    Fingerprint: str
    SilenceURL: str
    DashboardURL: str
    PanelURL: str


class ExtendedAlerts(list[ExtendedAlert]):
    """Ordered alerts of a notification with firing/resolved views."""

    @property
    def Firing(self) -> ExtendedAlerts:  # noqa: N802
        return ExtendedAlerts(a for a in self if a.Status == STATUS_FIRING)

    @property
    def Resolved(self) -> ExtendedAlerts:  # noqa: N802
        return ExtendedAlerts(a for a in self if a.Status == STATUS_RESOLVED)


def common_pairs(mappings: Iterable[Mapping[str, str]]) -> KV:
    """Return the key/value pairs shared by every mapping."""
    iterator = iter(mappings)
    try:
        common = dict(next(iterator))
    except StopIteration:
        return KV()
    for mapping in iterator:
        common = {k: v for k, v in common.items() if mapping.get(k) == v}
    return KV(common)


def sorted_values(pairs: Mapping[str, str]) -> list[str]:
    """Values ordered by their key."""
    return [pairs[name] for name in sorted(pairs)]


@dataclass(frozen=True)
class NotificationGroup:
    """A batch of alerts sent as one notification.

    Attributes:
        Alerts: Alerts in input order.
        GroupLabels: Labels the batch was grouped by.
        CommonLabels: Label pairs shared by every alert.
        CommonAnnotations: Annotation pairs shared by every alert.
        Status: ``firing`` if any alert fires, otherwise ``resolved``.
        ExternalURL: Base URL links are rooted at.
        RuleUrl: Link to the alert rule list.
        AlertPageUrl: Link to the alert list filtered by ``Status``.
    """

    Alerts: ExtendedAlerts
    GroupLabels: KV
    CommonLabels: KV
    CommonAnnotations: KV
    Status: str
    ExternalURL: str
    RuleUrl: str
    AlertPageUrl: str

    def to_template_data(self, title: str, message: str) -> dict[str, Any]:
        """Flatten the group into the mapping handed to email layouts."""
        return {
            "Title": title,
            "Message": message,
            "Status": self.Status,
            "Alerts": self.Alerts,
            "GroupLabels": self.GroupLabels,
            "CommonLabels": self.CommonLabels,
            "CommonAnnotations": self.CommonAnnotations,
            "ExternalURL": self.ExternalURL,
            "RuleUrl": self.RuleUrl,
            "AlertPageUrl": self.AlertPageUrl,
        }


@dataclass(frozen=True)
class NotificationChannelConfig:
    """A contact point as configured by the user.

    Attributes:
        name: Display name of the channel.
        type: Channel kind, e.g. ``email``.
        settings: Free-form settings, validated by the channel's notifier.
    """

    name: str
    type: str
    settings: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SendEmailCommand:
    """Command asking the email service to render and send a layout.

    Attributes:
        subject: Email subject line.
        to: Recipient addresses in configured order.
        single_email: Send one email to all recipients instead of one each.
        template: Name of the bundled email layout.
        data: View model the layout is rendered with.
    """

    subject: str
    to: tuple[str, ...]
    single_email: bool
    template: str
    data: Mapping[str, Any]


@dataclass(frozen=True)
class Message:
    """An email ready for the mail transport.

    Attributes:
        from_address: Formatted sender, e.g. ``"Alerts" <alerts@example.com>``.
        to: Recipients of this message.
        subject: Subject line.
        body: Rendered body keyed by content type (``text/html``, ...).
    """

    from_address: str
    to: tuple[str, ...]
    subject: str
    body: dict[str, str]
