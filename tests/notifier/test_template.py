"""Tests for notification view models and template rendering."""

from collections.abc import Mapping, MutableMapping
from datetime import UTC, datetime, timedelta

import pytest

from alert_notifier.notifier.errors import ConfigurationError, RenderError
from alert_notifier.notifier.models import Alert, ExtendedAlert
from alert_notifier.notifier.template import TemplateRenderer, layout_environment

# ============================================================================
# Fixtures
# ============================================================================

EXTERNAL_URL = "http://localhost/base"
PAST = datetime(2021, 1, 1, tzinfo=UTC)


@pytest.fixture
def renderer() -> TemplateRenderer:
    """Create a renderer rooted at a sub-path external URL."""
    return TemplateRenderer(EXTERNAL_URL)


@pytest.fixture
def always_firing() -> Alert:
    """Create the single firing alert used across tests."""
    return Alert(
        labels={"alertname": "AlwaysFiring", "severity": "warning"},
        annotations={
            "runbook_url": "http://fix.me",
            "__dashboardUid__": "abc",
            "__panelId__": "5",
        },
    )


@pytest.fixture
def two_firing() -> list[Alert]:
    """Create two firing alerts with disjoint label values."""
    annotations = {"runbook_url": "http://fix.me", "__dashboardUid__": "abc", "__panelId__": "5"}
    return [
        Alert(labels={"alertname": "FiringOne", "severity": "warning"}, annotations=annotations),
        Alert(labels={"alertname": "FiringTwo", "severity": "critical"}, annotations=annotations),
    ]


# ============================================================================
# Alert Tests
# ============================================================================


class TestAlert:
    """Tests for Alert status and parsing."""

    def test_firing_without_end(self) -> None:
        """Test an alert without end time is firing."""
        assert Alert(labels={"a": "b"}).status == "firing"

    def test_resolved_after_end(self) -> None:
        """Test an alert whose end time passed is resolved."""
        assert Alert(labels={"a": "b"}, ends_at=PAST).status == "resolved"

    def test_firing_before_end(self) -> None:
        """Test an alert expected to end in the future is still firing."""
        future = datetime.now(UTC) + timedelta(hours=1)
        assert Alert(labels={"a": "b"}, ends_at=future).status == "firing"

    def test_from_dict(self) -> None:
        """Test parsing the JSON form of an alert."""
        alert = Alert.from_dict(
            {
                "labels": {"alertname": "Disk", "instance": "db-1"},
                "annotations": {"summary": "Disk full"},
                "startsAt": "2021-01-01T00:00:00Z",
                "endsAt": "2021-01-01T01:00:00Z",
                "generatorURL": "http://localhost/base/alerting/rule/1",
            }
        )
        assert alert.labels == {"alertname": "Disk", "instance": "db-1"}
        assert alert.annotations == {"summary": "Disk full"}
        assert alert.starts_at == PAST
        assert alert.ends_at == PAST + timedelta(hours=1)
        assert alert.status == "resolved"
        assert alert.generator_url == "http://localhost/base/alerting/rule/1"

    def test_from_dict_minimal(self) -> None:
        """Test parsing an alert with only labels."""
        alert = Alert.from_dict({"labels": {"alertname": "X"}})
        assert alert.annotations == {}
        assert alert.starts_at is None
        assert alert.ends_at is None

    @pytest.mark.parametrize(
        ("data", "match"),
        [
            (1, "alert must be an object"),
            ({"labels": []}, "labels must be an object"),
            ({"labels": {"a": "b"}, "annotations": "x"}, "annotations must be an object"),
            ({"labels": {"a": "b"}, "startsAt": 5}, "ISO 8601"),
            ({"labels": {"a": "b"}, "endsAt": "yesterday"}, "Invalid isoformat"),
        ],
    )
    def test_from_dict_invalid(self, data: object, match: str) -> None:
        """Test malformed alerts are rejected with ValueError."""
        with pytest.raises(ValueError, match=match):
            Alert.from_dict(data)  # type: ignore[arg-type]


# ============================================================================
# View Model Tests
# ============================================================================


class TestBuildGroup:
    """Tests for TemplateRenderer.build_group()."""

    def test_extended_alert(self, renderer: TemplateRenderer, always_firing: Alert) -> None:
        """Test the per-alert view model."""
        group = renderer.build_group([always_firing])
        assert group.Alerts == [
            ExtendedAlert(
                Status="firing",
                Labels={"alertname": "AlwaysFiring", "severity": "warning"},
                Annotations={"runbook_url": "http://fix.me"},
                Fingerprint="15a37193dce72bab",
                SilenceURL=(
                    "http://localhost/base/alerting/silence/new?alertmanager=grafana"
                    "&matchers=alertname%3DAlwaysFiring%2Cseverity%3Dwarning"
                ),
                DashboardURL="http://localhost/base/d/abc",
                PanelURL="http://localhost/base/d/abc?viewPanel=5",
            )
        ]

    def test_group_fields(self, renderer: TemplateRenderer, always_firing: Alert) -> None:
        """Test group-level links and aggregates."""
        group = renderer.build_group([always_firing])
        assert group.Status == "firing"
        assert group.GroupLabels == {}
        assert group.CommonLabels == {"alertname": "AlwaysFiring", "severity": "warning"}
        assert group.CommonAnnotations == {"runbook_url": "http://fix.me"}
        assert group.ExternalURL == EXTERNAL_URL
        assert group.RuleUrl == "http://localhost/base/alerting/list"
        assert group.AlertPageUrl == (
            "http://localhost/base/alerting/list?alertState=firing&view=state"
        )

    def test_metadata_annotations_stripped(self, renderer: TemplateRenderer) -> None:
        """Test link metadata never reaches the rendered annotations."""
        alert = Alert(
            labels={"alertname": "X"},
            annotations={"__dashboardUid__": "abc", "__panelId__": "5"},
        )
        group = renderer.build_group([alert])
        assert group.Alerts[0].Annotations == {}
        assert group.CommonAnnotations == {}

    def test_no_dashboard(self, renderer: TemplateRenderer) -> None:
        """Test absent dashboard annotations produce empty links."""
        group = renderer.build_group([Alert(labels={"alertname": "X"})])
        assert group.Alerts[0].DashboardURL == ""
        assert group.Alerts[0].PanelURL == ""

    def test_order_preserved(self, renderer: TemplateRenderer, two_firing: list[Alert]) -> None:
        """Test alerts keep their input order."""
        group = renderer.build_group(reversed(two_firing))
        assert [a.Labels["alertname"] for a in group.Alerts] == ["FiringTwo", "FiringOne"]

    def test_common_labels_intersection(
        self, renderer: TemplateRenderer, two_firing: list[Alert]
    ) -> None:
        """Test common labels only keep pairs shared by every alert."""
        group = renderer.build_group(two_firing)
        assert group.CommonLabels == {}
        assert group.CommonAnnotations == {"runbook_url": "http://fix.me"}

    def test_status_escalates_to_firing(self, renderer: TemplateRenderer) -> None:
        """Test one firing alert makes the group firing."""
        group = renderer.build_group(
            [
                Alert(labels={"alertname": "A"}, ends_at=PAST),
                Alert(labels={"alertname": "B"}),
            ]
        )
        assert group.Status == "firing"
        assert len(group.Alerts.Firing) == 1
        assert len(group.Alerts.Resolved) == 1

    def test_all_resolved(self, renderer: TemplateRenderer) -> None:
        """Test a fully resolved batch links to resolved alerts."""
        group = renderer.build_group([Alert(labels={"alertname": "A"}, ends_at=PAST)])
        assert group.Status == "resolved"
        assert group.AlertPageUrl.endswith("alertState=resolved&view=state")

    def test_template_data_keys(self, renderer: TemplateRenderer, always_firing: Alert) -> None:
        """Test the layout data exposes exactly the documented fields."""
        data = renderer.build_group([always_firing]).to_template_data("t", "m")
        assert set(data) == {
            "Title",
            "Message",
            "Status",
            "Alerts",
            "GroupLabels",
            "CommonLabels",
            "CommonAnnotations",
            "ExternalURL",
            "RuleUrl",
            "AlertPageUrl",
        }
        assert data["Title"] == "t"
        assert data["Message"] == "m"

    def test_label_sets_read_only(self, renderer: TemplateRenderer, always_firing: Alert) -> None:
        """Test label and annotation sets cannot be modified."""
        group = renderer.build_group([always_firing], {"alertname": "AlwaysFiring"})
        for pairs in (
            group.GroupLabels,
            group.CommonLabels,
            group.CommonAnnotations,
            group.Alerts[0].Labels,
            group.Alerts[0].Annotations,
        ):
            assert isinstance(pairs, Mapping)
            assert not isinstance(pairs, MutableMapping)


# ============================================================================
# Title Tests
# ============================================================================


class TestTitle:
    """Tests for the bundled default title."""

    def test_single_alert(self, renderer: TemplateRenderer, always_firing: Alert) -> None:
        """Test a single alert lists its label values."""
        rendered = renderer.render(None, renderer.build_group([always_firing]))
        assert rendered.title == "[FIRING:1]  (AlwaysFiring warning)"

    def test_two_alerts(self, renderer: TemplateRenderer, two_firing: list[Alert]) -> None:
        """Test a batch without common labels has no suffix."""
        rendered = renderer.render(None, renderer.build_group(two_firing))
        assert rendered.title == "[FIRING:2]  "

    def test_resolved(self, renderer: TemplateRenderer) -> None:
        """Test a resolved alert title."""
        alert = Alert(labels={"alertname": "AlwaysFiring", "severity": "warning"}, ends_at=PAST)
        rendered = renderer.render(None, renderer.build_group([alert]))
        assert rendered.title == "[RESOLVED:1]  (AlwaysFiring warning)"

    def test_mixed(self, renderer: TemplateRenderer) -> None:
        """Test a batch with firing and resolved alerts counts both."""
        alerts = [
            Alert(labels={"alertname": "Disk", "instance": "db-1"}),
            Alert(labels={"alertname": "Disk", "instance": "db-2"}, ends_at=PAST),
        ]
        rendered = renderer.render(None, renderer.build_group(alerts))
        assert rendered.title == "[FIRING:1, RESOLVED:1]  (Disk)"

    def test_group_labels(self, renderer: TemplateRenderer) -> None:
        """Test group label values lead and are excluded from the suffix."""
        alerts = [
            Alert(labels={"alertname": "Disk", "team": "ops", "instance": "db-1"}),
            Alert(labels={"alertname": "Disk", "team": "ops", "instance": "db-2"}),
        ]
        group = renderer.build_group(alerts, {"alertname": "Disk"})
        assert renderer.render(None, group).title == "[FIRING:2] Disk (ops)"

    def test_suffix_sorted_by_label_name(self, renderer: TemplateRenderer) -> None:
        """Test suffix values follow label-name order, not insertion order."""
        alert = Alert(labels={"zone": "eu", "alertname": "Latency", "env": "prod"})
        rendered = renderer.render(None, renderer.build_group([alert]))
        assert rendered.title == "[FIRING:1]  (Latency prod eu)"


# ============================================================================
# Message Tests
# ============================================================================


class TestMessage:
    """Tests for user and default message templates."""

    def test_empty_template(self, renderer: TemplateRenderer, always_firing: Alert) -> None:
        """Test no template leaves the message for the layout to fill."""
        assert renderer.compile("") is None
        assert renderer.render("", renderer.build_group([always_firing])).message == ""

    def test_custom_template(self, renderer: TemplateRenderer, two_firing: list[Alert]) -> None:
        """Test a user template sees the view model fields."""
        template = renderer.compile(
            "Hi, this is a custom template.\n"
            "{% if Alerts.Firing | length > 0 %}"
            "You have {{ Alerts.Firing | length }} alerts firing."
            "{% for alert in Alerts.Firing %} Firing: {{ alert.Labels.alertname }}"
            " at {{ alert.Labels.severity }}{% endfor %}"
            "{% endif %}"
        )
        message = renderer.render(template, renderer.build_group(two_firing)).message
        assert "Hi, this is a custom template." in message
        assert "You have 2 alerts firing." in message
        assert "Firing: FiringOne at warning" in message
        assert "Firing: FiringTwo at critical" in message

    def test_include_default_title(self, renderer: TemplateRenderer, always_firing: Alert) -> None:
        """Test user templates can include the bundled title."""
        template = renderer.compile('{% include "default.title" %}')
        rendered = renderer.render(template, renderer.build_group([always_firing]))
        assert rendered.message == rendered.title == "[FIRING:1]  (AlwaysFiring warning)"

    def test_include_default_message(
        self, renderer: TemplateRenderer, always_firing: Alert
    ) -> None:
        """Test the bundled message lists labels and links."""
        template = renderer.compile('{% include "default.message" %}')
        message = renderer.render(template, renderer.build_group([always_firing])).message
        assert "**Firing**" in message
        assert " - alertname = AlwaysFiring" in message
        assert " - runbook_url = http://fix.me" in message
        assert "Silence: http://localhost/base/alerting/silence/new?" in message
        assert "Panel: http://localhost/base/d/abc?viewPanel=5" in message

    def test_user_markup_not_escaped_in_message(
        self, renderer: TemplateRenderer, always_firing: Alert
    ) -> None:
        """Test the message is plain text; escaping happens in the layout."""
        message = renderer.render("<b>{{ Status }}</b>", renderer.build_group([always_firing]))
        assert message.message == "<b>firing</b>"

    def test_deterministic(self, renderer: TemplateRenderer, two_firing: list[Alert]) -> None:
        """Test identical inputs render identically."""
        group = renderer.build_group(two_firing)
        assert renderer.render("{{ Status }}", group) == renderer.render("{{ Status }}", group)

    def test_syntax_error_is_configuration_error(self, renderer: TemplateRenderer) -> None:
        """Test a broken template is rejected when compiled."""
        with pytest.raises(ConfigurationError, match="invalid message template"):
            renderer.compile("{% if %}")

    def test_execution_error_is_render_error(
        self, renderer: TemplateRenderer, always_firing: Alert
    ) -> None:
        """Test a template failing at send time raises RenderError."""
        template = renderer.compile("{{ missing.attribute }}")
        with pytest.raises(RenderError, match="failed to render"):
            renderer.render(template, renderer.build_group([always_firing]))

    def test_syntax_error_in_source_at_render(
        self, renderer: TemplateRenderer, always_firing: Alert
    ) -> None:
        """Test uncompiled sources with syntax errors fail as RenderError."""
        with pytest.raises(RenderError):
            renderer.render("{% for %}", renderer.build_group([always_firing]))

    @pytest.mark.parametrize(
        "source",
        [
            "{{ Alerts.__class__.__mro__[-1].__subclasses__() | length }}",
            "{{ cycler.__init__.__globals__.os.name }}",
            "{{ Status.__class__.__base__.__subclasses__() }}",
        ],
    )
    def test_python_internals_unreachable(
        self, renderer: TemplateRenderer, always_firing: Alert, source: str
    ) -> None:
        """Test templates cannot walk into Python object internals."""
        with pytest.raises(RenderError):
            renderer.render(source, renderer.build_group([always_firing]))

    @pytest.mark.parametrize(
        "source",
        [
            "{% set _ = Alerts.clear() %}x",
            "{% set _ = Alerts.append(Alerts[0]) %}x",
            "{% set _ = CommonLabels.clear() %}x",
            "{% set _ = Alerts[0].Labels.pop('severity') %}x",
        ],
    )
    def test_view_model_not_modifiable(
        self, renderer: TemplateRenderer, always_firing: Alert, source: str
    ) -> None:
        """Test templates cannot modify the group they render."""
        group = renderer.build_group([always_firing])
        with pytest.raises(RenderError):
            renderer.render(source, group)

        assert len(group.Alerts) == 1
        assert group.CommonLabels == {"alertname": "AlwaysFiring", "severity": "warning"}
        assert group.Alerts[0].Labels["severity"] == "warning"

    def test_label_named_like_mapping_method(self, renderer: TemplateRenderer) -> None:
        """Test labels such as ``items`` resolve to their values."""
        group = renderer.build_group(
            [Alert(labels={"alertname": "Disk", "items": "disk", "keys": "k", "get": "g"})]
        )
        rendered = renderer.render(
            "{% for a in Alerts %}{{ a.Labels.items }} {{ a.Labels.keys }} {{ a.Labels.get }}"
            "{% endfor %}|{{ CommonLabels.items }}",
            group,
        )
        assert rendered.message == "disk k g|disk"

    def test_missing_label_renders_empty(
        self, renderer: TemplateRenderer, always_firing: Alert
    ) -> None:
        """Test an absent label is undefined rather than a mapping method."""
        rendered = renderer.render(
            "[{{ Alerts[0].Labels.missing }}]", renderer.build_group([always_firing])
        )
        assert rendered.message == "[]"


# ============================================================================
# Layout Tests
# ============================================================================


class TestLayout:
    """Tests for the bundled HTML email layout."""

    def _html(self, renderer: TemplateRenderer, alerts: list[Alert], message: str = "") -> str:
        group = renderer.build_group(alerts)
        rendered = renderer.render(message, group)
        layout = layout_environment().get_template("ng_alert_notification.html")
        return layout.render(group.to_template_data(rendered.title, rendered.message))

    def test_default_listing(self, renderer: TemplateRenderer, two_firing: list[Alert]) -> None:
        """Test the default layout lists every alert with its links."""
        html = self._html(renderer, two_firing)
        assert "Firing: 2 alerts" in html
        assert "<li>alertname: FiringOne</li><li>severity: warning</li>" in html
        assert "<li>alertname: FiringTwo</li><li>severity: critical</li>" in html
        assert '<a href="http://fix.me"' in html
        assert '<a href="http://localhost/base/d/abc"' in html
        assert '<a href="http://localhost/base/d/abc?viewPanel=5"' in html

    def test_label_values_escaped(self, renderer: TemplateRenderer) -> None:
        """Test label values cannot inject markup."""
        html = self._html(renderer, [Alert(labels={"alertname": "<b>bold</b>"})])
        assert "<b>bold</b>" not in html
        assert "&lt;b&gt;bold&lt;/b&gt;" in html

    def test_message_escaped(self, renderer: TemplateRenderer, always_firing: Alert) -> None:
        """Test user message markup is escaped in the HTML body."""
        html = self._html(
            renderer,
            [always_firing],
            "<marquee>Hi, this is a custom template.</marquee>",
        )
        assert "&lt;marquee&gt;Hi, this is a custom template.&lt;/marquee&gt;" in html
        assert "<marquee>" not in html

    @pytest.mark.parametrize(
        "runbook_url",
        [
            "javascript:alert(1)",
            " JavaScript:alert(1)",
            "data:text/html;base64,PHNjcmlwdD4=",
            "/relative/runbook",
        ],
    )
    def test_runbook_link_requires_http(self, renderer: TemplateRenderer, runbook_url: str) -> None:
        """Test runbook URLs with other schemes are not linked."""
        html = self._html(
            renderer,
            [Alert(labels={"alertname": "Disk"}, annotations={"runbook_url": runbook_url})],
        )
        assert ">Runbook</a>" not in html
        assert 'href="javascript' not in html.lower()

    def test_runbook_link_https(self, renderer: TemplateRenderer) -> None:
        """Test https runbook URLs are linked."""
        html = self._html(
            renderer,
            [
                Alert(
                    labels={"alertname": "Disk"},
                    annotations={"runbook_url": "https://wiki.example.com/disk"},
                )
            ],
        )
        assert '<a href="https://wiki.example.com/disk">Runbook</a>' in html
