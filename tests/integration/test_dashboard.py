import json
import re
from datetime import datetime, timezone

import pytest

from core.dashboard import DashboardBuilder, build_table, build_trend_series, build_view, format_instant, sort_entries


def test_table_orders_by_fetch_time_over_run_number(make_entry):
    """Test a newer fetch time wins even with a lower run number."""
    e1 = make_entry(page="one", fetch_time="2024-01-01T00:00:00.000Z", run_number=5)
    e2 = make_entry(page="two", fetch_time="2024-01-02T00:00:00.000Z", run_number=3)

    assert [entry.page for entry in sort_entries([e1, e2])] == ["two", "one"]


def test_table_ties_broken_by_run_number(make_entry):
    same = "2024-01-01T00:00:00.000Z"
    low = make_entry(page="low", fetch_time=same, run_number=1)
    missing = make_entry(page="missing", fetch_time=same, run_number=None)
    high = make_entry(page="high", fetch_time=same, run_number=9)

    assert [entry.page for entry in sort_entries([low, missing, high])] == ["high", "low", "missing"]


def test_table_unparseable_fetch_time_sorts_oldest(make_entry):
    bad = make_entry(page="bad", fetch_time="not a date", run_number=99)
    none = make_entry(page="none", fetch_time=None, run_number=1)
    old = make_entry(page="old", fetch_time="1999-01-01T00:00:00Z")

    assert [entry.page for entry in sort_entries([bad, none, old])] == ["old", "bad", "none"]


def test_out_of_range_fetch_time_is_treated_as_unparseable(make_entry):
    """Test an instant that cannot be shifted to UTC falls back to the raw label."""
    edge = make_entry(page="edge", fetch_time="0001-01-01T00:00:00+05:00")
    normal = make_entry(page="normal", fetch_time="2024-01-01T00:00:00.000Z")

    rows = build_table([edge, normal])

    assert [row.page for row in rows] == ["normal", "edge"]
    assert rows[1].fetch_time_label == "0001-01-01T00:00:00+05:00"
    assert build_trend_series([edge, normal], "edge", "mobile", "performance").points == []


def test_table_treats_non_numeric_run_number_as_zero(make_entry):
    same = "2024-01-01T00:00:00.000Z"
    text = make_entry(page="text", fetch_time=same)
    text.run_number = "abc"
    one = make_entry(page="one", fetch_time=same, run_number=1)

    assert [entry.page for entry in sort_entries([text, one])] == ["one", "text"]


def test_table_rows_are_display_ready(make_entry):
    entry = make_entry(fetch_time="2024-01-02T03:04:05.000Z", performance=0.57, seo=None,
                       run_number=12, report_url="lighthouse-reports/x.report.html")

    rows = build_table([entry])

    assert rows[0].run_label == "#12"
    assert rows[0].fetch_time_label == "2024-01-02 03:04 UTC"
    assert rows[0].scores["performance"] == 57.0
    assert rows[0].scores["seo"] is None
    assert rows[0].report_url == "lighthouse-reports/x.report.html"


def test_trend_series_excludes_null_scores(make_entry):
    """Test entries without the metric are left out instead of raising."""
    entries = [
        make_entry(fetch_time="2024-01-03T00:00:00Z", performance=0.7),
        make_entry(fetch_time="2024-01-01T00:00:00Z", performance=None),
        make_entry(fetch_time="2024-01-02T00:00:00Z", performance=0.6),
        make_entry(fetch_time="garbage", performance=0.1),
    ]

    series = build_trend_series(entries, "example com", "mobile", "performance")

    assert [point.value for point in series.points] == [60.0, 70.0]


def test_trend_series_groups_by_exact_pair(make_entry):
    entries = [
        make_entry(page="example com", preset="mobile", performance=0.5),
        make_entry(page="example com", preset="desktop", performance=0.9),
        make_entry(page="Example com", preset="mobile", performance=0.1),
    ]

    series = build_trend_series(entries, "example com", "mobile", "performance")

    assert [point.value for point in series.points] == [50.0]


def test_trend_series_threshold_shared_across_metrics(make_entry):
    entries = [make_entry(performance=0.5, accessibility=0.6, best_practices=0.7, seo=0.8)]

    view = build_view(entries)

    assert {series.metric for series in view.series} == {"performance", "accessibility", "bestPractices", "seo"}
    assert {series.threshold for series in view.series} == {90.0}
    assert view.find_series("example com", "mobile", "bestPractices").points[0].value == 70.0


def test_trend_series_rejects_unknown_metric(make_entry):
    with pytest.raises(ValueError):
        build_trend_series([make_entry()], "example com", "mobile", "lcp")


def test_naive_fetch_time_is_treated_as_utc(make_entry):
    entries = [
        make_entry(fetch_time="2024-01-01T10:00:00", performance=0.2),
        make_entry(fetch_time="2024-01-01T09:00:00+00:00", performance=0.1),
    ]

    series = build_trend_series(entries, "example com", "mobile", "performance")

    assert [point.value for point in series.points] == [10.0, 20.0]
    assert series.points[1].label == "2024-01-01 10:00 UTC"


def test_format_instant_converts_to_utc():
    value = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert format_instant(value) == "2024-01-01 12:00 UTC"
    assert format_instant(None) == ""


def test_publish_empty_writes_no_data_page(tmp_path):
    """Test zero entries and zero reports render a minimal page, not an error."""
    builder = DashboardBuilder()

    index_path = builder.publish([], tmp_path / "absent-reports", tmp_path / "site")

    html = index_path.read_text(encoding="utf-8")
    assert "No Lighthouse reports or history entries" in html
    assert "trendChart" not in html


def test_publish_copies_artifacts_and_embeds_series(tmp_path, reports_dir, write_report, make_entry):
    write_report("example_com-mobile-t1", "2024-01-01T00:00:00.000Z")
    entries = [make_entry(page="<b>example</b>", fetch_time="2024-01-01T00:00:00.000Z", performance=0.5,
                          report_url="lighthouse-reports/example_com-mobile-t1.report.html")]
    site_dir = tmp_path / "site"

    index_path = DashboardBuilder().publish(entries, reports_dir, site_dir)

    assert (site_dir / "lighthouse-reports" / "example_com-mobile-t1.report.html").exists()
    assert (site_dir / "lighthouse-reports" / "example_com-mobile-t1.report.json").exists()

    html = index_path.read_text(encoding="utf-8")
    assert "&lt;b&gt;example&lt;/b&gt;" in html
    assert 'href="lighthouse-reports/example_com-mobile-t1.report.html"' in html

    snapshot = re.search(r'<script id="lh-data" type="application/json">(.*?)</script>', html, re.S).group(1)
    series = json.loads(snapshot)
    performance = [s for s in series if s["metric"] == "performance"][0]
    assert performance["page"] == "<b>example</b>"
    assert performance["threshold"] == 90.0
    assert [point["value"] for point in performance["points"]] == [50.0]


def test_publish_with_fresh_reports_but_empty_ledger_renders_dashboard(tmp_path, reports_dir, write_report):
    write_report("example_com-mobile-t1", "2024-01-01T00:00:00.000Z")

    html = DashboardBuilder().publish([], reports_dir, tmp_path / "site").read_text(encoding="utf-8")

    assert "No history entries yet." in html


def test_publish_merges_existing_site(tmp_path, reports_dir, make_entry):
    existing = tmp_path / "previous"
    (existing / "lighthouse-reports").mkdir(parents=True)
    (existing / "lighthouse-reports" / "old-mobile-t0.report.html").write_text("old", encoding="utf-8")

    site_dir = tmp_path / "site"
    DashboardBuilder().publish([make_entry()], reports_dir, site_dir, existing_site_dir=existing)

    assert (site_dir / "lighthouse-reports" / "old-mobile-t0.report.html").read_text(encoding="utf-8") == "old"
    assert (site_dir / "index.html").exists()


def test_custom_threshold_flows_into_series(make_entry):
    builder = DashboardBuilder(threshold=75)

    view = builder.build_view([make_entry()])

    assert all(series.threshold == 75 for series in view.series)
