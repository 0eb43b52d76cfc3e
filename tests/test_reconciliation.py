"""
Tests for submission reconciliation.

These tests verify:
- Wire payload parsing and canonical fields
- Pool indexing (matching, primary, unassigned, available)
- Slot resolution and the slot -> submission mapping
- Data issue reporting
"""

import pytest

from linkdesk.reconciliation import (
    DataIssueKind,
    OrderGroup,
    SiteSubmission,
    index_pool,
    parse_groups,
    parse_submissions,
    reconcile_group,
    reconcile_order,
    resolve_slots,
)

from conftest import make_group, make_submission, scenario_submissions


def _group(**kwargs) -> OrderGroup:
    return OrderGroup.from_api(make_group(**kwargs))


def _subs(payloads) -> list:
    return parse_submissions(payloads)


# =============================================================================
# MODEL PARSING
# =============================================================================

class TestModels:
    """Test tolerant parsing of wire payloads."""

    def test_group_from_api(self, group_payload):
        group = OrderGroup.from_api(group_payload)
        assert group.id == "group-1"
        assert group.link_count == 2
        assert group.client.name == "Acme Outdoors"
        assert [p.url for p in group.target_pages] == ["/a", "/b"]
        assert group.anchor_text_at(1) == "hiking boots"
        assert group.package_price == 279.0

    def test_negative_link_count_coerced_to_zero(self):
        group = OrderGroup.from_api({"id": "g", "linkCount": -3})
        assert group.link_count == 0

    def test_missing_lists_give_empty_slots(self):
        group = OrderGroup.from_api({"id": "g", "linkCount": 3})
        assert group.slot_target_urls == [None, None, None]
        assert group.anchor_text_at(0) is None

    def test_assigned_target_falls_back_to_metadata(self):
        sub = SiteSubmission.from_api({
            "id": "s1",
            "targetPageUrl": "",
            "metadata": {"targetPageUrl": "/a", "anchorText": "tents"},
        })
        assert sub.assigned_target_url == "/a"
        assert sub.is_assigned
        assert sub.effective_anchor_text == "tents"

    def test_review_status_prefers_submission_status(self):
        sub = SiteSubmission.from_api({"id": "s1", "status": "submitted", "submissionStatus": "client_approved"})
        assert sub.review_status == "client_approved"

        sub = SiteSubmission.from_api({"id": "s2", "status": "submitted"})
        assert sub.review_status == "submitted"

    def test_unknown_metadata_kept_in_extra(self):
        sub = SiteSubmission.from_api({"id": "s1", "metadata": {"overlapStatus": "both", "customFlag": 7}})
        assert sub.metadata.overlap_status == "both"
        assert sub.metadata.extra == {"customFlag": 7}

    def test_none_metadata(self):
        sub = SiteSubmission.from_api({"id": "s1", "metadata": None})
        assert sub.metadata.target_page_url is None
        assert not sub.is_assigned

    def test_missing_rank_defaults_to_one(self):
        assert SiteSubmission.from_api({"id": "s1"}).rank == 1
        assert SiteSubmission.from_api({"id": "s1", "poolRank": 0}).rank == 1
        assert SiteSubmission.from_api({"id": "s1", "poolRank": 3}).rank == 3

    def test_parse_skips_non_objects(self):
        assert [s.id for s in parse_submissions([{"id": "a"}, None, "junk", {"id": "b"}])] == ["a", "b"]
        assert parse_groups(None) == []


# =============================================================================
# POOL INDEXER
# =============================================================================

class TestPoolIndex:
    """Test partitioning of a group's submissions for one target."""

    def test_matching_and_unassigned(self):
        subs = _subs(scenario_submissions())
        pool = index_pool(subs, "/a")
        assert [s.id for s in pool.matching] == ["s1"]
        assert [s.id for s in pool.primary] == ["s1"]
        assert [s.id for s in pool.unassigned] == ["s3"]
        assert [s.id for s in pool.available] == ["s1", "s3"]
        assert [s.id for s in pool.alternatives] == ["s3"]

    def test_primary_sorted_by_rank_stable(self):
        subs = _subs([
            make_submission("p3", "/a", "primary", 3),
            make_submission("p1", "/a", "primary", 1),
            make_submission("px", "/a", "primary", None),
            make_submission("p2", "/a", "primary", 2),
        ])
        pool = index_pool(subs, "/a")
        # Missing rank counts as 1 and keeps input order against p1
        assert [s.id for s in pool.primary] == ["p1", "px", "p2", "p3"]

    def test_rejected_excluded_from_primary_and_available(self):
        subs = _subs([
            make_submission("s1", "/a", "primary", 1, submission_status="client_rejected"),
            make_submission("s2", "/a", "primary", 2),
            make_submission("s3", None, "alternative", submission_status="client_rejected"),
        ])
        pool = index_pool(subs, "/a")
        assert [s.id for s in pool.matching] == ["s1", "s2"]
        assert [s.id for s in pool.primary] == ["s2"]
        assert [s.id for s in pool.available] == ["s2"]

    def test_untargeted_slot_matches_unassigned(self):
        subs = _subs(scenario_submissions())
        pool = index_pool(subs, None)
        assert [s.id for s in pool.matching] == ["s3"]
        assert pool.primary == []

    def test_empty_input(self):
        pool = index_pool([], "/a")
        assert pool.matching == pool.primary == pool.unassigned == pool.available == []
        assert index_pool(None, None).available == []

    def test_pure_and_stable(self):
        subs = _subs(scenario_submissions())
        first = index_pool(subs, "/b")
        second = index_pool(subs, "/b")
        assert [s.id for s in first.available] == [s.id for s in second.available]


# =============================================================================
# SLOT RESOLVER
# =============================================================================

class TestSlotResolver:
    """Test per-slot display and alternates."""

    def test_scenario_distinct_targets(self):
        group = _group()
        slots = resolve_slots(group, _subs(scenario_submissions()))

        assert len(slots) == 2
        assert slots[0].display_submission.id == "s1"
        assert slots[1].display_submission.id == "s2"
        assert "s3" in [s.id for s in slots[0].available]
        assert "s3" in [s.id for s in slots[1].available]
        assert [s.id for s in slots[0].alternates] == ["s3"]

    def test_scenario_no_submissions(self):
        slots = resolve_slots(_group(), [])
        assert [s.display_submission for s in slots] == [None, None]
        assert all(s.available == [] for s in slots)
        assert all(s.is_empty for s in slots)

    def test_scenario_reject_display_submission(self):
        payloads = scenario_submissions()
        payloads.insert(1, make_submission("s1b", "/a", "primary", 2))
        payloads[0]["submissionStatus"] = "client_rejected"

        slots = resolve_slots(_group(), _subs(payloads))
        assert "s1" not in [s.id for s in slots[0].available]
        assert slots[0].display_submission.id == "s1b"

    def test_reject_only_primary_leaves_slot_without_display(self):
        payloads = scenario_submissions()
        payloads[0]["submissionStatus"] = "client_rejected"
        slots = resolve_slots(_group(), _subs(payloads))
        assert slots[0].display_submission is None
        assert [s.id for s in slots[0].available] == ["s3"]

    def test_shared_target_fills_slots_in_rank_order(self):
        group = _group(link_count=3, target_urls=["/a", "/a", "/a"])
        subs = _subs([
            make_submission("second", "/a", "primary", 2),
            make_submission("first", "/a", "primary", 1),
        ])
        slots = resolve_slots(group, subs)
        assert [s.display_submission.id if s.display_submission else None for s in slots] == [
            "first", "second", None,
        ]

    @pytest.mark.parametrize("group_payload_override,subs", [
        ({"id": "g", "linkCount": None}, None),
        ({"id": "g", "linkCount": "abc", "targetPages": "oops"}, [{"id": "x"}]),
        ({"id": "g", "linkCount": 4, "targetPages": [None, 5, {"url": None}]}, [{"id": "x", "metadata": None}]),
        ({"id": "g", "linkCount": 2}, [{"id": "x", "submissionStatus": "weird", "selectionPool": "primary"}]),
        ({}, [{}]),
        ({"id": "g", "linkCount": float("inf")}, [{"id": "x", "poolRank": float("inf")}]),
        ({"id": "g", "linkCount": 1}, [{"id": "x", "poolRank": float("nan"), "domainRating": float("-inf")}]),
    ])
    def test_never_raises(self, group_payload_override, subs):
        group = OrderGroup.from_api(group_payload_override)
        resolved = reconcile_group(group, parse_submissions(subs))
        assert len(resolved.slots) == group.link_count


# =============================================================================
# GROUP RECONCILIATION
# =============================================================================

class TestReconcileGroup:
    """Test group-level pools, counts and data issues."""

    def test_pool_view_and_counts(self):
        payloads = scenario_submissions()
        payloads[0]["submissionStatus"] = "client_approved"
        resolved = reconcile_group(_group(), _subs(payloads))

        assert resolved.show_pool_view
        assert [s.id for s in resolved.unassigned] == ["s3"]
        assert resolved.counts.approved == 1
        assert resolved.counts.pending == 2
        assert resolved.counts.rejected == 0
        assert resolved.slot_assignments == {0: "s1", 1: "s2"}

    def test_no_pool_view_when_every_submission_assigned(self):
        payloads = scenario_submissions()[:2]
        resolved = reconcile_group(_group(), _subs(payloads))
        assert not resolved.show_pool_view

    def test_orphaned_submission_reported(self):
        payloads = scenario_submissions() + [make_submission("s4", "/gone", "primary", 1)]
        resolved = reconcile_group(_group(), _subs(payloads))

        assert [s.id for s in resolved.orphaned] == ["s4"]
        kinds = [i.kind for i in resolved.data_issues]
        assert DataIssueKind.ORPHANED_SUBMISSION in kinds

    def test_duplicate_primary_reported(self):
        payloads = scenario_submissions() + [make_submission("s5", "/a", "primary", 2)]
        resolved = reconcile_group(_group(), _subs(payloads))
        issues = [i for i in resolved.data_issues if i.kind == DataIssueKind.DUPLICATE_PRIMARY]
        assert len(issues) == 1
        assert issues[0].slot_index == 0

    def test_link_count_mismatch_and_empty_slots(self):
        group = _group(link_count=3)
        resolved = reconcile_group(group, [])
        kinds = [i.kind for i in resolved.data_issues]
        assert DataIssueKind.LINK_COUNT_MISMATCH in kinds
        assert kinds.count(DataIssueKind.EMPTY_SLOT) == 3

    def test_find_submission_and_slot(self):
        resolved = reconcile_group(_group(), _subs(scenario_submissions()))
        s2 = resolved.find_submission("s2")
        assert resolved.slot_for_submission(s2).index == 1
        assert resolved.find_submission("missing") is None

    def test_reconcile_order_handles_missing_pool(self):
        groups = [_group(group_id="g1"), _group(group_id="g2")]
        resolved = reconcile_order(groups, {"g1": _subs(scenario_submissions())})
        assert [r.group.id for r in resolved] == ["g1", "g2"]
        assert resolved[1].submissions == []
        assert reconcile_order(groups, None)[0].slots[0].display_submission is None
