"""
Tests for review table state and row view models.
"""

import pytest

from linkdesk.reconciliation import OrderGroup, parse_submissions, reconcile_group
from linkdesk.review import (
    NO_SITES_PLACEHOLDER,
    PanelClosed,
    PanelOpen,
    ReviewTableState,
    TablePermissions,
)

from conftest import make_group, scenario_submissions


@pytest.fixture
def resolved():
    group = OrderGroup.from_api(make_group())
    return reconcile_group(group, parse_submissions(scenario_submissions()))


class TestExpandCollapse:

    def test_all_groups_start_expanded(self):
        table = ReviewTableState(["g1", "g2"])
        assert table.is_expanded("g1") and table.is_expanded("g2")

    def test_toggle(self):
        table = ReviewTableState(["g1"])
        assert table.toggle_group("g1") is False
        assert not table.is_expanded("g1")
        assert table.toggle_group("g1") is True


class TestEditingPanel:

    def test_single_panel(self):
        table = ReviewTableState(["g1"])
        table.open_panel("g1", 0)
        table.open_panel("g1", 1)
        assert table.panel == PanelOpen("g1", 1)
        assert not table.is_editing("g1", 0)

    def test_escape_closes(self):
        table = ReviewTableState(["g1"])
        table.open_panel("g1", 0)
        assert table.handle_key("Enter") is False
        assert table.handle_key("Escape") is True
        assert table.panel == PanelClosed()

    def test_click_outside_closes(self):
        table = ReviewTableState(["g1"])
        table.open_panel("g1", 0)
        assert table.handle_click(inside_panel=True) is False
        assert table.is_panel_open
        assert table.handle_click() is True
        assert not table.is_panel_open

    def test_events_ignored_while_closed(self):
        table = ReviewTableState(["g1"])
        assert table.handle_key("Escape") is False
        assert table.handle_click() is False


class TestColumns:

    def _keys(self, table):
        return [c.key for c in table.columns()]

    def test_site_selection_stage(self):
        table = ReviewTableState([], "site_selection_with_sites")
        assert self._keys(table) == ["client", "link_details", "site", "status"]
        assert table.columns()[0].header == "Client / Target Page"

    def test_internal_tools_column(self):
        table = ReviewTableState([], "post_approval", TablePermissions(can_view_internal_tools=True))
        assert self._keys(table)[-1] == "tools"

    def test_content_creation_stage(self):
        table = ReviewTableState([], "content_creation")
        assert "draft_url" in self._keys(table)

    def test_completed_never_shows_tools(self):
        table = ReviewTableState([], "completed", TablePermissions.for_reviewer("internal"))
        assert self._keys(table) == ["client", "link_details", "site", "published_url", "completion"]

    def test_default_stage_shows_price_when_allowed(self):
        table = ReviewTableState([], "initial", TablePermissions(can_view_pricing=True))
        assert self._keys(table) == ["client", "anchor", "price"]


class TestBuildRows:

    def test_group_header(self, resolved):
        table = ReviewTableState(["group-1"])
        [row] = table.build_rows([resolved])

        assert row.client_name == "Acme Outdoors"
        assert row.links_label == "2 links needed"
        assert row.suggested_label == "3 sites suggested"
        assert row.counts.pending == 3
        assert row.expanded

    def test_slot_rows(self, resolved):
        table = ReviewTableState(["group-1"])
        table.open_panel("group-1", 1)
        [row] = table.build_rows([resolved])

        first, second = row.slots
        assert first.display.submission_id == "s1"
        assert first.display.status_badge.label == "Pending Review"
        assert [c.submission_id for c in first.alternates] == ["s3"]
        assert first.placeholder is None
        assert not first.is_editing
        assert second.is_editing

    def test_pool_section(self, resolved):
        [row] = ReviewTableState(["group-1"]).build_rows([resolved])
        assert row.show_pool_view
        assert [c.submission_id for c in row.pool] == ["s3"]

    def test_placeholder_for_empty_slot(self):
        empty = reconcile_group(OrderGroup.from_api(make_group()), [])
        [row] = ReviewTableState(["group-1"]).build_rows([empty])
        assert [s.placeholder for s in row.slots] == [NO_SITES_PLACEHOLDER, NO_SITES_PLACEHOLDER]
        assert all(s.display is None and s.alternates_count == 0 for s in row.slots)
        assert row.pool == []

    def test_price_hidden_without_permission(self, resolved):
        [row] = ReviewTableState(["group-1"], permissions=TablePermissions()).build_rows([resolved])
        assert row.slots[0].display.price is None

        [row] = ReviewTableState(
            ["group-1"], permissions=TablePermissions(can_view_pricing=True)
        ).build_rows([resolved])
        assert row.slots[0].display.price == 150.0

    def test_cells_carry_analysis_signals(self):
        payloads = scenario_submissions()
        payloads[0]["metadata"] = {
            "qualificationStatus": "high_quality",
            "overlapStatus": "both",
            "authorityDirect": "strong",
            "authorityRelated": "n/a",
            "evidence": {"direct_count": 3, "related_count": 2},
            "hasDataForSeoResults": True,
        }
        payloads[2]["domain"]["overlapStatus"] = "related"
        resolved = reconcile_group(OrderGroup.from_api(make_group()), parse_submissions(payloads))

        [row] = ReviewTableState(["group-1"]).build_rows([resolved])
        display = row.slots[0].display
        assert display.qualification.label == "★★★"
        assert display.overlap.label == "STRONGEST"
        assert [b.label for b in display.authority] == ["Direct: strong"]
        assert display.evidence == "3 direct, 2 related"
        assert display.has_dataforseo_results

        [alternate] = row.slots[0].alternates
        assert alternate.submission_id == "s3"
        assert alternate.overlap.label == "DECENT"
        assert alternate.qualification.label == "○"
        assert alternate.authority == []
        assert alternate.evidence == ""
