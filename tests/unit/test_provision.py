"""Unit tests for interview_sync.provision."""

from __future__ import annotations

from fakes import MEMBER_DB, FakeRecordStore
from interview_sync.config import PropertyMap
from interview_sync.provision import backfill_ids, collect_missing_names, provision_members
from interview_sync.reconcile import MemberLink, PendingUpdate
from interview_sync.shared import SyncCounters


def _updates() -> list[PendingUpdate]:
    return [
        PendingUpdate(
            page_id="p1",
            interviewee=MemberLink("山田"),
            interviewers=[MemberLink("鈴木", "id-2"), MemberLink("佐藤")],
        ),
        PendingUpdate(
            page_id="p2",
            interviewee=MemberLink("佐藤"),
            interviewers=[MemberLink("山田"), MemberLink("高橋")],
        ),
    ]


class TestCollectMissingNames:
    def test_unique_in_first_seen_order(self):
        assert collect_missing_names(_updates()) == ["山田", "佐藤", "高橋"]

    def test_resolved_links_ignored(self):
        updates = [PendingUpdate("p1", interviewee=MemberLink("田中", "id-1"))]
        assert collect_missing_names(updates) == []


class TestBackfillIds:
    def test_every_occurrence_filled(self):
        updates = _updates()
        filled = backfill_ids(updates, {"山田": "new-a", "佐藤": "new-b"})
        assert filled == 4
        assert updates[0].interviewee.page_id == "new-a"
        assert updates[0].interviewers[1].page_id == "new-b"
        assert updates[1].interviewee.page_id == "new-b"
        assert updates[1].interviewers[0].page_id == "new-a"
        assert updates[1].interviewers[1].page_id is None


class TestProvisionMembers:
    def test_one_page_per_unique_name(self):
        store = FakeRecordStore()
        updates = _updates()
        counters = SyncCounters()
        created = provision_members(store, MEMBER_DB, updates, PropertyMap(), counters, max_workers=3)
        assert sorted(created) == ["佐藤", "山田", "高橋"]
        assert len(store.calls_to("POST", "pages")) == 3
        assert counters.members_created == 3
        names = sorted(p["properties"]["Name"]["title"][0]["plain_text"] for p in store.tables[MEMBER_DB])
        assert names == ["佐藤", "山田", "高橋"]
        assert all(link.page_id for u in updates for link in u.links())

    def test_no_missing_names_is_noop(self):
        store = FakeRecordStore()
        updates = [PendingUpdate("p1", interviewee=MemberLink("田中", "id-1"))]
        assert provision_members(store, MEMBER_DB, updates, PropertyMap(), SyncCounters()) == {}
        assert store.calls == []

    def test_failed_name_stays_unresolved_others_filled(self):
        store = FakeRecordStore()
        store.fail_create_names.add("佐藤")
        updates = _updates()
        counters = SyncCounters()
        created = provision_members(store, MEMBER_DB, updates, PropertyMap(), counters)
        assert sorted(created) == ["山田", "高橋"]
        assert counters.member_create_failures == 1
        assert [(f.kind, f.target) for f in counters.failures] == [("create_failed", "佐藤")]
        assert updates[1].interviewee.page_id is None
        assert updates[0].interviewee.page_id == created["山田"]

    def test_dry_run_creates_nothing(self):
        store = FakeRecordStore()
        updates = _updates()
        assert provision_members(store, MEMBER_DB, updates, PropertyMap(), SyncCounters(), dry_run=True) == {}
        assert store.calls == []
        assert updates[0].interviewee.page_id is None
