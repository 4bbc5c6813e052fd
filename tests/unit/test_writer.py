"""Unit tests for interview_sync.writer."""

from __future__ import annotations

from fakes import INTERVIEW_DB, FakeRecordStore, interview_page
from interview_sync.config import PropertyMap
from interview_sync.reconcile import MemberLink, PendingUpdate
from interview_sync.shared import SyncCounters
from interview_sync.writer import apply_updates, build_update_properties, merge_ids

PROPS = PropertyMap()


class TestMergeIds:
    def test_existing_first_then_new(self):
        assert merge_ids(["a", "b"], ["c"]) == ["a", "b", "c"]

    def test_duplicates_by_normalized_id(self):
        assert merge_ids(["ab-cd"], ["ABCD", "ef"]) == ["ab-cd", "ef"]


class TestBuildUpdateProperties:
    def test_both_relations(self):
        update = PendingUpdate(
            "p1",
            interviewee=MemberLink("田中", "id-1"),
            interviewers=[MemberLink("鈴木", "id-2")],
            existing_interviewer_ids=["id-9"],
        )
        assert build_update_properties(update, PROPS) == {
            "インタビュイー": {"relation": [{"id": "id-1"}]},
            "インタビュアー": {"relation": [{"id": "id-9"}, {"id": "id-2"}]},
        }

    def test_unresolved_links_left_out(self):
        update = PendingUpdate(
            "p1",
            interviewee=MemberLink("田中"),
            interviewers=[MemberLink("鈴木", "id-2"), MemberLink("佐藤")],
        )
        assert build_update_properties(update, PROPS) == {
            "インタビュアー": {"relation": [{"id": "id-2"}]},
        }

    def test_nothing_resolved(self):
        update = PendingUpdate("p1", interviewee=MemberLink("田中"), interviewers=[MemberLink("鈴木")])
        assert build_update_properties(update, PROPS) == {}


class TestApplyUpdates:
    def _store(self) -> FakeRecordStore:
        store = FakeRecordStore()
        store.add(INTERVIEW_DB, interview_page("p1", "t", interviewers=("id-9",)))
        store.add(INTERVIEW_DB, interview_page("p2", "t"))
        store.add(INTERVIEW_DB, interview_page("p3", "t"))
        return store

    def _updates(self) -> list[PendingUpdate]:
        return [
            PendingUpdate(
                "p1",
                interviewee=MemberLink("田中", "id-1"),
                interviewers=[MemberLink("鈴木", "id-2")],
                existing_interviewer_ids=["id-9"],
            ),
            PendingUpdate("p2", interviewee=MemberLink("山田")),
            PendingUpdate("p3", interviewers=[MemberLink("佐藤", "id-3")]),
        ]

    def test_writes_resolved_and_skips_unresolved(self):
        store = self._store()
        counters = SyncCounters()
        apply_updates(store, self._updates(), PROPS, counters, max_workers=2)
        assert sorted(store.calls_to("PATCH", "pages")) == ["pages/p1", "pages/p3"]
        assert store.relation_ids("p1", "インタビュイー") == ["id-1"]
        assert store.relation_ids("p1", "インタビュアー") == ["id-9", "id-2"]
        assert store.relation_ids("p3", "インタビュアー") == ["id-3"]
        assert counters.updates_written == 2
        assert counters.updates_skipped_unresolved == 1

    def test_one_failure_does_not_block_others(self):
        store = self._store()
        store.fail_update_ids.add("p1")
        counters = SyncCounters()
        apply_updates(store, self._updates(), PROPS, counters)
        assert counters.update_failures == 1
        assert counters.updates_written == 1
        assert counters.failures[0].kind == "update_failed"
        assert store.relation_ids("p3", "インタビュアー") == ["id-3"]

    def test_dry_run_writes_nothing(self):
        store = self._store()
        counters = SyncCounters()
        apply_updates(store, self._updates(), PROPS, counters, dry_run=True)
        assert store.calls == []
        assert counters.updates_written == 0
