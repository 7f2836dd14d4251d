"""HTML rendering for the dashboard pages.

Plain server-side markup: a configuration form when no credentials are
known, otherwise a header with actions, the KPI strip and one card per ad.
Every dynamic value goes through html.escape.
"""

from html import escape
from typing import Optional

from ..schemas import AdRecord, DashboardTotals
from .controller import DashboardController, DashboardState

STYLES = """
body { margin: 0; font-family: system-ui, sans-serif; background: linear-gradient(to bottom right, #eff6ff, #e0e7ff); min-height: 100vh; }
.container { padding: 24px; }
.card { background: white; border-radius: 12px; box-shadow: 0 4px 6px rgba(0,0,0,0.1); padding: 24px; }
.config { max-width: 600px; margin: 0 auto; padding: 40px; }
.config input { width: 100%; padding: 12px 16px; border: 1px solid #d1d5db; border-radius: 8px; box-sizing: border-box; }
.config label { display: block; font-size: 14px; font-weight: 500; color: #374151; margin: 24px 0 8px; }
.hint { font-size: 12px; color: #6b7280; margin-top: 4px; }
button { background: #2563eb; color: white; padding: 10px 20px; border-radius: 8px; border: none; cursor: pointer; }
button.logout { background: #ef4444; }
button.sync { background: #059669; }
.header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 24px; }
.actions form { display: inline; }
.banner { padding: 16px; border-radius: 8px; margin-bottom: 24px; }
.banner.error { background: #fee2e2; color: #991b1b; }
.banner.notice { background: #d1fae5; color: #065f46; }
.kpis { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 16px; margin-bottom: 24px; }
.kpi .value { font-size: 28px; font-weight: bold; color: #1f2937; }
.kpi .label, .kpi .sub { color: #6b7280; font-size: 14px; }
.ads { display: grid; grid-template-columns: repeat(auto-fill, minmax(280px, 1fr)); gap: 16px; }
.ad img, .ad .placeholder { width: 100%; height: 180px; object-fit: cover; border-radius: 8px; background: #f3f4f6; display: flex; align-items: center; justify-content: center; font-size: 48px; }
.ad dl { display: grid; grid-template-columns: auto auto; gap: 4px 12px; font-size: 14px; }
.ad dd { margin: 0; text-align: right; font-weight: 600; }
"""


def _page(body: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        "<title>Meta Ads Dashboard</title>"
        f"<style>{STYLES}</style></head>"
        f"<body><div class=\"container\">{body}</div></body></html>"
    )


def _banner(kind: str, text: Optional[str]) -> str:
    if not text:
        return ""
    return f"<div class=\"banner {kind}\">{escape(text)}</div>"


def render_config_form(error: Optional[str] = None) -> str:
    return _page(
        "<div class=\"card config\">"
        "<h1>Meta Ads Dashboard</h1>"
        "<p class=\"hint\">Configure your credentials to get started</p>"
        f"{_banner('error', error)}"
        "<form method=\"post\" action=\"/configure\">"
        "<label for=\"access_token\">Meta Access Token</label>"
        "<input type=\"password\" id=\"access_token\" name=\"access_token\" placeholder=\"EAABwzLixnjY...\">"
        "<div class=\"hint\">Get one at developers.facebook.com/tools/explorer/ (ads_read permission)</div>"
        "<label for=\"account_id\">Ad Account ID</label>"
        "<input type=\"text\" id=\"account_id\" name=\"account_id\" placeholder=\"123456789\">"
        "<div class=\"hint\">Find it in Meta Business Suite settings</div>"
        "<p><button type=\"submit\">Connect dashboard</button></p>"
        "</form></div>"
    )


def render_kpis(totals: DashboardTotals) -> str:
    kpis = [
        ("Total reach", f"{totals.reach:,}", "Unique users"),
        ("Impressions", f"{totals.impressions:,}", "Times shown"),
        ("Average CPC", f"${totals.avg_cpc:,.2f}", "Cost per click"),
        ("Total spend", f"${totals.spend:,.2f}", "Amount spent"),
    ]
    cells = "".join(
        f"<div class=\"card kpi\"><div class=\"label\">{label}</div>"
        f"<div class=\"value\">{value}</div><div class=\"sub\">{sub}</div></div>"
        for label, value, sub in kpis
    )
    return f"<div class=\"kpis\">{cells}</div>"


def render_ad_card(record: AdRecord) -> str:
    if record.image_url:
        image = f"<img src=\"{escape(record.image_url)}\" alt=\"{escape(record.ad_name or '')}\">"
    else:
        image = "<div class=\"placeholder\">&#128444;</div>"

    status = record.effective_status or record.status or ""
    return (
        "<div class=\"card ad\">"
        f"{image}"
        f"<h3>{escape(record.ad_name or record.ad_id)}</h3>"
        f"<div class=\"hint\">{escape(status)}</div>"
        "<dl>"
        f"<dt>Reach</dt><dd>{record.reach:,}</dd>"
        f"<dt>Impressions</dt><dd>{record.impressions:,}</dd>"
        f"<dt>CPC</dt><dd>${record.cpc:,.2f}</dd>"
        f"<dt>Clicks</dt><dd>{record.clicks:,}</dd>"
        f"<dt>Spend</dt><dd>${record.spend:,.2f}</dd>"
        "</dl></div>"
    )


def render_dashboard(controller: DashboardController) -> str:
    if controller.state is DashboardState.UNCONFIGURED:
        return render_config_form(controller.error)

    loading = controller.state is DashboardState.LOADING
    header = (
        "<div class=\"card header\">"
        "<div><h1>Meta Ads Dashboard</h1>"
        f"<p class=\"hint\">Account {escape(controller.credentials.account_id if controller.credentials else '')}</p></div>"
        "<div class=\"actions\">"
        f"<form method=\"post\" action=\"/refresh\"><button type=\"submit\">{'Loading...' if loading else 'Refresh'}</button></form> "
        "<form method=\"post\" action=\"/sync\"><button class=\"sync\" type=\"submit\">Sync to Google Sheets</button></form> "
        "<form method=\"post\" action=\"/logout\"><button class=\"logout\" type=\"submit\">Log out</button></form>"
        "</div></div>"
    )

    parts = [header, _banner("error", controller.error), _banner("notice", controller.notice)]

    if loading:
        parts.append("<div class=\"card\">Loading Meta Ads data...</div>")
    else:
        totals = controller.totals
        if totals is not None:
            parts.append(render_kpis(totals))
            parts.append(
                "<div class=\"ads\">" + "".join(render_ad_card(record) for record in controller.records) + "</div>"
            )

    return _page("".join(parts))
