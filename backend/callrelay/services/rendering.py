from html import escape
from typing import Iterable, Sequence

from callrelay.services.reports import Report
from callrelay.services.tenants import Tenant

PERIOD_LABELS = {
    "daily": "Today",
    "weekly": "This week",
    "monthly": "This month",
}

STYLE = """
body { font-family: sans-serif; margin: 2rem; color: #222; }
table { border-collapse: collapse; margin-bottom: 1.5rem; }
th, td { border: 1px solid #ccc; padding: 0.4rem 0.8rem; text-align: right; }
th:first-child, td:first-child { text-align: left; }
.muted { color: #777; }
"""


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\">"
        f"<title>{escape(title)}</title><style>{STYLE}</style></head>"
        f"<body>{body}</body></html>"
    )


def _report_table(report: Report) -> str:
    if not report.rows:
        return '<p class="muted">No calls in this period.</p>'
    lines = [
        "<table><tr><th>Group</th><th>Total calls</th>"
        "<th>Answered calls</th><th>Scheduled meetings</th></tr>"
    ]
    for (tenant_name, number), row in sorted(
        report.rows.items(), key=lambda item: (item[0][0], item[0][1] or "")
    ):
        label = tenant_name if number is None else f"{tenant_name} ({number})"
        lines.append(
            f"<tr><td>{escape(label)}</td><td>{row.total_calls}</td>"
            f"<td>{row.answered_calls}</td><td>{row.scheduled_meetings}</td></tr>"
        )
    lines.append("</table>")
    return "".join(lines)


def _report_block(report: Report, heading: str) -> str:
    window = f"{report.start:%Y-%m-%d} to {report.end:%Y-%m-%d}"
    return (
        f"<h2>{escape(heading)}</h2>"
        f'<p class="muted">{escape(window)} (end exclusive)</p>'
        f"{_report_table(report)}"
    )


def render_report(report: Report, tenant: Tenant | None = None) -> str:
    scope = tenant.name if tenant else "All accounts"
    title = f"{scope}: {report.period.value} report for {report.reference_date.isoformat()}"
    body = f"<h1>{escape(title)}</h1>" + _report_block(
        report, PERIOD_LABELS.get(report.period.value, report.period.value)
    )
    if tenant:
        body += f'<p><a href="/{escape(tenant.id)}/dashboard">Back to dashboard</a></p>'
    return _page(title, body)


def render_dashboard(tenant: Tenant, reports: Sequence[Report]) -> str:
    title = f"{tenant.name} dashboard"
    blocks = "".join(
        _report_block(report, PERIOD_LABELS.get(report.period.value, report.period.value))
        for report in reports
    )
    return _page(title, f"<h1>{escape(title)}</h1>{blocks}")


def render_index(tenants: Iterable[Tenant]) -> str:
    items = "".join(
        f'<li><a href="/{escape(tenant.id)}/dashboard">{escape(tenant.name)}</a></li>'
        for tenant in tenants
    )
    if not items:
        return _page("Accounts", '<h1>Accounts</h1><p class="muted">No accounts configured.</p>')
    return _page("Accounts", f"<h1>Accounts</h1><ul>{items}</ul>")


def render_error(status_code: int, message: str) -> str:
    return _page(
        f"Error {status_code}",
        f"<h1>Error {status_code}</h1><p>{escape(message)}</p>",
    )
