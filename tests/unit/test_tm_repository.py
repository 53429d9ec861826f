"""Tests for core/tm/repository.py - SegmentStore."""

import time

import pytest

from core.tm.exceptions import InvalidArgumentError, SegmentNotFoundError
from core.tm.repository import SegmentStore
from core.tm.schemas import SegmentCreate, SegmentUpdate


@pytest.fixture
def store(tmp_path):
    s = SegmentStore(tmp_path / "tm.db", source_language="ko", target_language="en")
    yield s
    s.dispose()


def _create(store, source="하나님의 은혜", target="God's grace", **kwargs):
    return store.insert(SegmentCreate(source_text=source, target_text=target, **kwargs))


class TestInsert:

    def test_assigns_id_and_defaults(self, store):
        seg = _create(store, event="Bible Study")
        assert seg.id is not None
        assert seg.source_language == "ko"
        assert seg.target_language == "en"
        assert seg.usage_count == 0
        assert seg.avg_rating is None
        assert seg.rating_count == 0
        assert seg.event == "Bible Study"
        assert seg.created_at == seg.updated_at

    def test_ids_are_unique(self, store):
        ids = {_create(store, source=f"문장 {i}").id for i in range(5)}
        assert len(ids) == 5

    def test_explicit_language_pair(self, store):
        seg = _create(store, source="grace", target="은혜", source_language="en", target_language="ko")
        assert (seg.source_language, seg.target_language) == ("en", "ko")

    def test_accepts_dict(self, store):
        seg = store.insert({"source_text": "말씀", "target_text": "the Word", "topic": "John 1:1"})
        assert seg.topic == "John 1:1"

    def test_metadata_round_trips(self, store):
        seg = _create(store, metadata={"scripture": "Eph 2:8"})
        assert store.get(seg.id).metadata == {"scripture": "Eph 2:8"}

    def test_rejects_empty_text_in_dict(self, store):
        with pytest.raises(InvalidArgumentError):
            store.insert({"source_text": "", "target_text": "x"})

    def test_rejects_blank_text(self, store):
        with pytest.raises(InvalidArgumentError):
            store.insert(SegmentCreate(source_text="   ", target_text="x"))


class TestGetAndUpdate:

    def test_get_missing_returns_none(self, store):
        assert store.get(999) is None

    def test_require_missing_raises(self, store):
        with pytest.raises(SegmentNotFoundError) as exc:
            store.require(999)
        assert exc.value.segment_id == 999

    def test_update_merges_fields(self, store):
        seg = _create(store, event="Bible Study", topic="Eph 2:8")
        time.sleep(0.01)
        updated = store.update(seg.id, SegmentUpdate(target_text="the grace of God"))

        assert updated.target_text == "the grace of God"
        assert updated.source_text == seg.source_text
        assert updated.event == "Bible Study"
        assert updated.topic == "Eph 2:8"
        assert updated.created_at == seg.created_at
        assert updated.updated_at > seg.updated_at

    def test_update_with_dict(self, store):
        seg = _create(store)
        updated = store.update(seg.id, {"event": "Weekly Forum"})
        assert updated.event == "Weekly Forum"

    def test_update_missing_raises(self, store):
        with pytest.raises(SegmentNotFoundError):
            store.update(42, SegmentUpdate(target_text="x"))

    @pytest.mark.parametrize("field", ["id", "usage_count", "avg_rating", "created_at"])
    def test_update_rejects_read_only_fields(self, store, field):
        seg = _create(store)
        with pytest.raises(InvalidArgumentError):
            store.update(seg.id, {field: 3})

    def test_update_rejects_blank_text(self, store):
        seg = _create(store)
        with pytest.raises(InvalidArgumentError):
            store.update(seg.id, SegmentUpdate(source_text="  "))

    def test_update_clears_optional_fields(self, store):
        seg = _create(store, event="Bible Study", topic="Eph 2:8", context="sermon")
        updated = store.update(seg.id, SegmentUpdate(event=None, context=None))
        assert updated.event is None
        assert updated.context is None
        assert updated.topic == "Eph 2:8"

    def test_update_clears_with_dict(self, store):
        seg = _create(store, topic="Eph 2:8")
        assert store.update(seg.id, {"topic": None}).topic is None

    @pytest.mark.parametrize("field", ["source_text", "target_text", "source_language", "target_language"])
    def test_update_cannot_clear_required_fields(self, store, field):
        seg = _create(store)
        with pytest.raises(InvalidArgumentError):
            store.update(seg.id, {field: None})
        assert store.get(seg.id).source_text == seg.source_text


class TestDeleteAndList:

    def test_delete(self, store):
        seg = _create(store)
        assert store.delete(seg.id) is True
        assert store.get(seg.id) is None

    def test_delete_missing(self, store):
        assert store.delete(123) is False

    def test_list_paginates_newest_first(self, store):
        created = [_create(store, source=f"문장 {i}") for i in range(5)]

        page1, total = store.list(page=1, limit=2)
        page3, _ = store.list(page=3, limit=2)

        assert total == 5
        assert [s.id for s in page1] == [created[4].id, created[3].id]
        assert [s.id for s in page3] == [created[0].id]

    def test_list_search(self, store):
        _create(store, source="하나님의 은혜", target="God's grace")
        _create(store, source="믿음", target="faith")

        segments, total = store.list(search="grace")
        assert total == 1
        assert segments[0].target_text == "God's grace"

    def test_list_rejects_bad_page(self, store):
        with pytest.raises(InvalidArgumentError):
            store.list(page=0)


class TestFindCandidates:

    @pytest.fixture
    def seeded(self, store):
        return {
            "a": _create(store, source="은혜", event="Bible Study", topic="Eph 2:8", translated_by=1),
            "b": _create(store, source="믿음", event="Weekly Forum", topic="Heb 11:1", translated_by=2),
            "c": _create(store, source="사랑", event="Bible Study", topic="1 Cor 13", translated_by=2),
            "d": _create(store, source="love", target="사랑", source_language="en", target_language="ko"),
        }

    def test_language_pair_is_mandatory_filter(self, store, seeded):
        ids = {s.id for s in store.find_candidates("ko", "en")}
        assert ids == {seeded["a"].id, seeded["b"].id, seeded["c"].id}

        ids = {s.id for s in store.find_candidates("en", "ko")}
        assert ids == {seeded["d"].id}

    def test_event_filter(self, store, seeded):
        ids = {s.id for s in store.find_candidates("ko", "en", event="Bible Study")}
        assert ids == {seeded["a"].id, seeded["c"].id}

    def test_topic_and_translator_filters(self, store, seeded):
        assert [s.id for s in store.find_candidates("ko", "en", topic="Heb 11:1")] == [seeded["b"].id]
        ids = {s.id for s in store.find_candidates("ko", "en", translator_id=2)}
        assert ids == {seeded["b"].id, seeded["c"].id}

    def test_combined_filters(self, store, seeded):
        result = store.find_candidates("ko", "en", event="Bible Study", translator_id=2)
        assert [s.id for s in result] == [seeded["c"].id]

    def test_unknown_pair_is_empty(self, store, seeded):
        assert store.find_candidates("ja", "en") == []

    def test_max_candidates_bounds_result(self, store, seeded):
        assert len(store.find_candidates("ko", "en", max_candidates=2)) == 2


class TestStats:

    def test_empty(self, store):
        stats = store.stats()
        assert stats.total_segments == 0
        assert stats.total_usage == 0
        assert stats.language_pairs == []
        assert stats.feedback_by_action == {}

    def test_counts(self, store):
        _create(store)
        _create(store, source="love", target="사랑", source_language="en", target_language="ko")

        stats = store.stats()
        assert stats.total_segments == 2
        assert stats.language_pairs == ["en-ko", "ko-en"]
        assert len(stats.top_segments) == 2
