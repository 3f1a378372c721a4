"""
Pushover notifications for schedule updates, failures and pool alerts.
"""

import datetime
import logging
import traceback

import requests

from constants import (
    CHANGELOG_BROWSE_URL,
    PUSHOVER_API_TOKEN,
    PUSHOVER_API_URL,
    PUSHOVER_USER_KEY,
    REQUEST_TIMEOUT_SECONDS,
    SCHEDULES_SITE_URL,
)

logger = logging.getLogger(__name__)

SEVERITY_EMOJI = {
    "wholesale": "🔄",
    "major": "📢",
    "moderate": "📝",
    "minor": "✏️",
}

SEVERITY_LABEL = {
    "wholesale": "New schedule season",
    "major": "Major update",
    "moderate": "Moderate update",
    "minor": "Minor update",
}


def send_notification(title, message, priority=0, url=None, url_title=None, session=requests):
    """Post a message to Pushover. Returns False (without raising) when it wasn't delivered."""
    if not PUSHOVER_USER_KEY or not PUSHOVER_API_TOKEN:
        logger.warning("Pushover credentials not configured, skipping notification")
        return False

    data = {
        "token": PUSHOVER_API_TOKEN,
        "user": PUSHOVER_USER_KEY,
        "title": title,
        "message": message,
        "priority": str(priority),
    }
    if url:
        data["url"] = url
    if url_title:
        data["url_title"] = url_title

    try:
        response = session.post(PUSHOVER_API_URL, data=data, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        print(f"Failed to send notification: {e}")
        traceback.print_exc()
        return False

    if not response.ok:
        logger.warning("Pushover API error: %s %s", response.status_code, response.text)
        return False

    print("Notification sent successfully")
    return True


def format_date_range(start, end):
    """'2025-01-06', '2025-03-14' -> 'Jan 6 – Mar 14'"""
    if not start or not end:
        return ""
    try:
        start_date = datetime.datetime.strptime(start, "%Y-%m-%d")
        end_date = datetime.datetime.strptime(end, "%Y-%m-%d")
    except ValueError:
        return ""
    return f"{start_date:%b} {start_date.day} – {end_date:%b} {end_date.day}"


def build_update_message(entry):
    """(title, message) for a changelog entry."""
    severity = entry.get("changeSeverity")
    emoji = SEVERITY_EMOJI.get(severity, "")
    label = SEVERITY_LABEL.get(severity, "Update")
    title = f"{emoji} {label}".strip()

    lines = []
    if entry.get("scheduleSeason"):
        lines.append(entry["scheduleSeason"])
    date_range = format_date_range(entry.get("scheduleStartDate"), entry.get("scheduleEndDate"))
    if date_range:
        lines.append(date_range)

    parts = []
    if entry.get("totalProgramsAdded", 0) > 0:
        parts.append(f"+{entry['totalProgramsAdded']}")
    if entry.get("totalProgramsRemoved", 0) > 0:
        parts.append(f"-{entry['totalProgramsRemoved']}")
    if entry.get("totalProgramsModified", 0) > 0:
        parts.append(f"~{entry['totalProgramsModified']}")
    if parts:
        lines.append(f"{entry['poolsChanged']} pool(s): {' '.join(parts)} programs")

    warnings = entry.get("warnings") or []
    if warnings:
        lines.append(f"⚠️ {len(warnings)} warning(s)")

    return title, "\n".join(lines) or "Schedules have been updated."


def notify_schedule_update(entry):
    if not entry:
        return send_notification("🏊 Pool Schedules Updated", "Schedules have been updated.",
                                 url=SCHEDULES_SITE_URL, url_title="View Schedules")
    title, message = build_update_message(entry)
    if CHANGELOG_BROWSE_URL:
        return send_notification(title, message, url=CHANGELOG_BROWSE_URL, url_title="View Change History")
    return send_notification(title, message, url=SCHEDULES_SITE_URL, url_title="View Schedules")


def notify_no_changes():
    return send_notification("🏊 Pool Schedules Checked", "No changes detected in pool schedules.", priority=-1)


def notify_error(error):
    return send_notification("⚠️ Pool Schedule Update Failed", error, priority=1)


def _truncate(text, length):
    return text[:length] + ("..." if len(text) > length else "")


def build_alerts_message(site_wide_alerts, pool_alerts):
    lines = []
    if site_wide_alerts:
        lines.append(f"📢 {len(site_wide_alerts)} site-wide alert(s)")
        for alert in site_wide_alerts[:2]:
            lines.append(f"• {_truncate(alert, 80)}")

    if pool_alerts:
        if lines:
            lines.append("")
        lines.append(f"🏊 {len(pool_alerts)} pool alert(s)")
        for alert in pool_alerts[:3]:
            lines.append(f"• {alert['poolName']}: {_truncate(alert['alertText'], 60)}")
        if len(pool_alerts) > 3:
            lines.append(f"  ...and {len(pool_alerts) - 3} more")

    return "\n".join(lines)


def notify_new_alerts(site_wide_alerts, pool_alerts):
    total = len(site_wide_alerts) + len(pool_alerts)
    if total == 0:
        return True
    title = f"🚨 {total} New Pool Alert{'s' if total > 1 else ''}"
    return send_notification(title, build_alerts_message(site_wide_alerts, pool_alerts),
                             priority=1, url=SCHEDULES_SITE_URL, url_title="View Alerts")
