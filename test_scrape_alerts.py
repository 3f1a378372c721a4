import json

import scrape_alerts
from constants import POOL_LIST_URL
from scrape_alerts import extract_alerts, find_new_alerts, is_real_alert, run_alerts, scrape_pool_alerts

PAGE = """
<html><body>
  <div class="header"><div class="fr-view"><p>Attention: our website will be down for maintenance tonight</p></div></div>
  <div class="fr-view">
    <p>Coffman Pool is closed until further notice due to a broken boiler.</p>
    <p>Closed</p>
    <p>To report a maintenance issue please call 311, the pool is temporarily closed.</p>
    <p>This pool offers lap swim, family swim and lessons.</p>
    <p>Coffman Pool is closed&nbsp;until   further notice due to a broken boiler.</p>
    <ul><li>Sava Pool lessons are cancelled this Saturday for a swim meet.</li></ul>
  </div>
  <div class="footer"><div class="fr-view"><p>Emergency contact information for all facilities</p></div></div>
</body></html>
"""

POOL_PAGE = "https://sfrecpark.org/Facilities/Facility/Details/Coffman-Pool-202"


def test_is_real_alert():
    assert is_real_alert("Pool closed for cleaning on Monday")
    assert not is_real_alert("Lap swim every weekday morning")
    assert not is_real_alert("Closed? Click here to report a problem")


def test_extract_site_wide_alerts():
    assert extract_alerts(PAGE, ["li", "p"]) == [
        "Coffman Pool is closed until further notice due to a broken boiler.",
        "Sava Pool lessons are cancelled this Saturday for a swim meet.",
    ]


def test_alert_length_limits():
    long_text = "Closed " + "x" * 600
    html = f"<div class='fr-view'><p>Pool closed.</p><p>{long_text}</p></div>"
    assert extract_alerts(html, ["p"]) == []


def test_scrape_pool_alerts(fake_session):
    discovered = [
        {"poolId": "coffman", "poolName": "Coffman Pool", "pageUrl": POOL_PAGE, "pdfUrl": None},
        {"poolId": "sava", "poolName": "Sava Pool", "pageUrl": None, "pdfUrl": None},
    ]
    session = fake_session({POOL_PAGE: PAGE})

    alerts = scrape_pool_alerts(discovered, session=session, delay=0, now="2025-01-06T08:00:00-08:00")

    assert [a["alertText"] for a in alerts] == [
        "Coffman Pool is closed until further notice due to a broken boiler.",
    ]
    assert alerts[0]["poolId"] == "coffman"
    assert alerts[0]["scrapedAt"] == "2025-01-06T08:00:00-08:00"
    assert len(session.requests) == 1


def test_find_new_alerts():
    old_alert = {"poolName": "Coffman Pool", "alertText": "Closed for repairs until further notice"}
    new_alert = {"poolName": "Rossi Pool", "alertText": "Closed for repairs until further notice"}
    previous = {"siteWideAlerts": ["Holiday closure on Monday"], "poolAlerts": [old_alert]}
    current = {
        "siteWideAlerts": ["Holiday closure on Monday", "All pools closed Thursday"],
        "poolAlerts": [old_alert, new_alert],
    }

    assert find_new_alerts(previous, current) == (["All pools closed Thursday"], [new_alert])
    assert find_new_alerts(None, current) == (current["siteWideAlerts"], current["poolAlerts"])


def test_run_alerts_notifies_only_new(tmp_path, fake_session, monkeypatch):
    alerts_file = tmp_path / "alerts.json"
    discovered_file = tmp_path / "discovered.json"
    discovered_file.write_text(json.dumps([
        {"poolId": "coffman", "poolName": "Coffman Pool", "pageUrl": POOL_PAGE, "pdfUrl": None},
    ]), encoding="utf-8")
    notified = []
    monkeypatch.setattr(scrape_alerts, "notify_new_alerts", lambda site, pools: notified.append((site, pools)))
    session = fake_session({POOL_LIST_URL: "<div class='fr-view'></div>", POOL_PAGE: PAGE})

    run_alerts(notify=True, alerts_file=str(alerts_file), discovered_file=str(discovered_file),
               session=session, delay=0)
    assert len(notified) == 1
    assert len(notified[0][1]) == 1

    _, new_site_wide, new_pool_alerts = run_alerts(
        notify=True, alerts_file=str(alerts_file), discovered_file=str(discovered_file), session=session, delay=0)
    assert (new_site_wide, new_pool_alerts) == ([], [])
    assert len(notified) == 1
    assert json.loads(alerts_file.read_text(encoding="utf-8"))["poolAlerts"][0]["poolName"] == "Coffman Pool"
