"""Bundled email layouts.

HTML layouts are rendered by the email service with autoescaping enabled,
so every value coming from alerts or user templates is HTML-escaped while
the markup below is emitted as-is. Runbook links are only rendered for
http(s) URLs. Plain text layouts are not escaped.
"""

from __future__ import annotations

ALERT_NOTIFICATION_LAYOUT = "ng_alert_notification"

_ALERT_NOTIFICATION_HTML = """\
{%- macro alert_list(alerts) -%}
{%- for alert in alerts %}
<div class="alert" style="margin-bottom: 16px;">
<ul>{% for name, value in alert.Labels | dictsort %}<li>{{ name }}: {{ value }}</li>{% endfor %}</ul>
{%- if alert.Annotations %}
<ul class="annotations">{% for name, value in alert.Annotations | dictsort %}<li>{{ name }}: {{ value }}</li>{% endfor %}</ul>
{%- endif %}
<p>
{%- if alert.Annotations.runbook_url is http_url %}
<a href="{{ alert.Annotations.runbook_url }}">Runbook</a>
{%- endif %}
{%- if alert.SilenceURL %}
<a href="{{ alert.SilenceURL }}">Silence</a>
{%- endif %}
{%- if alert.DashboardURL %}
<a href="{{ alert.DashboardURL }}">Go to dashboard</a>
{%- endif %}
{%- if alert.PanelURL %}
<a href="{{ alert.PanelURL }}">Go to panel</a>
{%- endif %}
</p>
</div>
{%- endfor %}
{%- endmacro -%}
<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>{{ Title }}</title>
</head>
<body style="font-family: Helvetica, Arial, sans-serif; color: #1f1f20;">
<h2>{{ Title }}</h2>
{%- if Message %}
<div class="message" style="white-space: pre-wrap;">{{ Message }}</div>
{%- else %}
{%- if Alerts.Firing %}
<h3>Firing: {{ Alerts.Firing | length }} alerts</h3>
{{ alert_list(Alerts.Firing) }}
{%- endif %}
{%- if Alerts.Resolved %}
<h3>Resolved: {{ Alerts.Resolved | length }} alerts</h3>
{{ alert_list(Alerts.Resolved) }}
{%- endif %}
{%- endif %}
<p>
<a href="{{ AlertPageUrl }}">View your alerts</a>
<a href="{{ RuleUrl }}">Alert rules</a>
</p>
<p style="font-size: 12px; color: #8e8e8e;">Sent by {{ ExternalURL }}</p>
</body>
</html>
"""

_ALERT_NOTIFICATION_TXT = """\
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
{{ Title }}

{% if Message -%}
{{ Message }}
{%- else -%}
{%- if Alerts.Firing -%}
Firing: {{ Alerts.Firing | length }} alerts
{{ alert_list(Alerts.Firing) }}
{%- endif %}
{% if Alerts.Resolved -%}
Resolved: {{ Alerts.Resolved | length }} alerts
{{ alert_list(Alerts.Resolved) }}
{%- endif %}
{%- endif %}

View your alerts: {{ AlertPageUrl }}
"""

LAYOUTS: dict[str, str] = {
    f"{ALERT_NOTIFICATION_LAYOUT}.html": _ALERT_NOTIFICATION_HTML,
    f"{ALERT_NOTIFICATION_LAYOUT}.txt": _ALERT_NOTIFICATION_TXT,
}

# Layout file extension per email content type
CONTENT_TYPE_EXTENSIONS = {
    "text/html": "html",
    "text/plain": "txt",
}
