"""Tests for CollabService operations over the in-memory store."""

import pytest

from collabmatch.domain.collab.collab_models import CollabCreateParams, CollabMatchParams
from collabmatch.schemas import CollabStatus, CollabType, StreamPhase
from collabmatch.services.youtube.youtube_schemas import StreamInfo
from collabmatch.utils.app_errors import AppError, AppErrorCode
from tests.fixtures.collab_fixtures import (
    CREATOR_ID,
    CREATOR_VIDEO,
    NOW,
    PARTNER_IDS,
    PARTNER_VIDEOS,
    ended_status,
    live_status,
    make_collab,
    upstream_error_status,
    waiting_status,
    watch_url,
)


def create_params(**overrides) -> CollabCreateParams:
    values = {
        "creator_id": CREATOR_ID,
        "title": "Co-op speedrun",
        "description": "Need a second runner",
        "collab_type": CollabType.GAMING,
        "max_partners": 1,
        "stream_url": watch_url(CREATOR_VIDEO),
    }
    values.update(overrides)
    return CollabCreateParams(**values)


def match_params(user_id: str = PARTNER_IDS[0], video_id: str = PARTNER_VIDEOS[0]) -> CollabMatchParams:
    return CollabMatchParams(
        collab_id="cl_test",
        user_id=user_id,
        description="I can join",
        stream_url=watch_url(video_id),
    )


class TestCreateCollab:
    async def test_create_fills_creator_slot_and_runs_status_pass(self, collab_service, memory_store, fake_resolver):
        fake_resolver.statuses[CREATOR_VIDEO] = waiting_status()

        collab = await collab_service.create_collab(create_params(max_partners=2))

        assert collab.collab_id.startswith("cl_")
        assert collab.status == CollabStatus.OPEN
        assert collab.last_status_check == NOW
        assert [slot.index for slot in collab.slots] == [0, 1, 2]
        assert collab.creator_slot.user_id == CREATOR_ID
        assert collab.creator_slot.video_id == CREATOR_VIDEO
        assert collab.creator_slot.last_known_status.phase == StreamPhase.WAITING
        assert not collab.slot(1).is_occupied
        assert collab.collab_id in memory_store.collabs

    @pytest.mark.parametrize("max_partners", [0, 3])
    async def test_max_partners_out_of_range(self, collab_service, max_partners):
        with pytest.raises(AppError) as exc_info:
            await collab_service.create_collab(create_params(max_partners=max_partners))

        assert exc_info.value.errcode == AppErrorCode.E_INVALID_PARAMS.value

    async def test_invalid_link(self, collab_service, fake_resolver):
        with pytest.raises(AppError) as exc_info:
            await collab_service.create_collab(create_params(stream_url="https://example.com/stream"))

        assert exc_info.value.errcode == AppErrorCode.E_INVALID_STREAM_LINK.value
        assert fake_resolver.calls == []

    @pytest.mark.parametrize(
        "status",
        [live_status(), ended_status(), upstream_error_status().model_copy(update={"error": None})],
    )
    async def test_stream_must_be_waiting_room(self, collab_service, memory_store, fake_resolver, status):
        fake_resolver.statuses[CREATOR_VIDEO] = status

        with pytest.raises(AppError) as exc_info:
            await collab_service.create_collab(create_params())

        assert exc_info.value.errcode == AppErrorCode.E_STREAM_NOT_WAITING.value
        assert memory_store.collabs == {}

    async def test_unverifiable_stream(self, collab_service, memory_store, fake_resolver):
        fake_resolver.statuses[CREATOR_VIDEO] = upstream_error_status()

        with pytest.raises(AppError) as exc_info:
            await collab_service.create_collab(create_params())

        assert exc_info.value.errcode == AppErrorCode.E_STREAM_UNVERIFIABLE.value
        assert exc_info.value.status_code == 503
        assert memory_store.collabs == {}

    async def test_one_active_collab_per_creator(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(status=CollabStatus.IN_PROGRESS))
        fake_resolver.statuses[CREATOR_VIDEO] = waiting_status()

        with pytest.raises(AppError) as exc_info:
            await collab_service.create_collab(create_params())

        assert exc_info.value.errcode == AppErrorCode.E_ACTIVE_COLLAB_EXISTS.value

    async def test_terminal_collab_does_not_block_new_one(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(collab_id="cl_old", status=CollabStatus.ENDED))
        fake_resolver.statuses[CREATOR_VIDEO] = waiting_status()

        collab = await collab_service.create_collab(create_params())

        assert collab.status == CollabStatus.OPEN


class TestMatchCollab:
    async def test_match_fills_slot_and_moves_to_setting_up(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(max_partners=1))
        fake_resolver.statuses[CREATOR_VIDEO] = waiting_status()
        fake_resolver.statuses[PARTNER_VIDEOS[0]] = waiting_status()

        collab = await collab_service.match_collab(match_params())

        partner = collab.slot(1)
        assert partner.user_id == PARTNER_IDS[0]
        assert partner.video_id == PARTNER_VIDEOS[0]
        assert partner.description == "I can join"
        assert partner.matched_at is not None
        assert collab.status == CollabStatus.SETTING_UP

    async def test_creator_cannot_match_own_collab(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(max_partners=1))

        with pytest.raises(AppError) as exc_info:
            await collab_service.match_collab(match_params(user_id=CREATOR_ID))

        assert exc_info.value.errcode == AppErrorCode.E_SELF_MATCH.value
        assert fake_resolver.calls == []
        stored = await memory_store.get("cl_test")
        assert stored.version == 1
        assert not stored.slot(1).is_occupied

    async def test_partner_stream_must_be_waiting(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(max_partners=1))
        fake_resolver.statuses[PARTNER_VIDEOS[0]] = live_status()

        with pytest.raises(AppError) as exc_info:
            await collab_service.match_collab(match_params())

        assert exc_info.value.errcode == AppErrorCode.E_STREAM_NOT_WAITING.value
        assert memory_store.update_calls == []

    async def test_missing_collab(self, collab_service):
        with pytest.raises(AppError) as exc_info:
            await collab_service.match_collab(match_params())

        assert exc_info.value.errcode == AppErrorCode.E_COLLAB_NOT_FOUND.value

    async def test_lost_race_takes_next_slot(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(max_partners=2))
        fake_resolver.statuses[CREATOR_VIDEO] = waiting_status()
        fake_resolver.statuses[PARTNER_VIDEOS[0]] = waiting_status()
        memory_store.inject_conflicts(1)

        collab = await collab_service.match_collab(match_params())

        assert collab.slot(1).user_id == PARTNER_IDS[0]
        assert len([s for s in collab.slots if s.user_id == PARTNER_IDS[0]]) == 1

    async def test_failed_status_pass_still_returns_match(self, collab_service, memory_store, fake_resolver):
        """The partner keeps the slot even when the follow-up status pass loses two races."""
        memory_store.put(make_collab(max_partners=1))
        fake_resolver.statuses[CREATOR_VIDEO] = waiting_status()
        fake_resolver.statuses[PARTNER_VIDEOS[0]] = waiting_status()
        original_update = memory_store.update_with_version_check

        async def conflict_after_match(collab_id, expected_version, update):
            # Let the slot write through, then fail both status writes
            memory_store.update_with_version_check = original_update
            new_version = await original_update(collab_id, expected_version, update)
            memory_store.inject_conflicts(2)
            return new_version

        memory_store.update_with_version_check = conflict_after_match

        collab = await collab_service.match_collab(match_params())

        assert collab.slot(1).user_id == PARTNER_IDS[0]
        assert collab.status == CollabStatus.OPEN

    async def test_lost_race_on_full_collab_is_rejected(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(max_partners=1))
        fake_resolver.statuses[PARTNER_VIDEOS[1]] = waiting_status()

        # Another partner takes the only slot between validation and write
        original_update = memory_store.update_with_version_check

        async def racing_update(collab_id, expected_version, update):
            memory_store.put(make_collab(max_partners=1, partners=PARTNER_IDS[:1]).model_copy(update={"version": 2}))
            memory_store.update_with_version_check = original_update
            return await original_update(collab_id, expected_version, update)

        memory_store.update_with_version_check = racing_update

        with pytest.raises(AppError) as exc_info:
            await collab_service.match_collab(match_params(user_id=PARTNER_IDS[1], video_id=PARTNER_VIDEOS[1]))

        assert exc_info.value.errcode == AppErrorCode.E_COLLAB_FULL.value
        assert (await memory_store.get("cl_test")).slot(1).user_id == PARTNER_IDS[0]


class TestQueriesAndDelete:
    async def test_get_collab_not_found(self, collab_service):
        with pytest.raises(AppError) as exc_info:
            await collab_service.get_collab("cl_missing")

        assert exc_info.value.status_code == 404

    async def test_list_user_collabs_includes_partner_roles(self, collab_service, memory_store):
        memory_store.put(make_collab(collab_id="cl_a", partners=PARTNER_IDS[:1]))
        memory_store.put(make_collab(collab_id="cl_b", creator_id=PARTNER_IDS[0]))
        memory_store.put(make_collab(collab_id="cl_c", creator_id="u.other"))

        result = await collab_service.list_user_collabs(PARTNER_IDS[0])

        assert sorted(c.collab_id for c in result.collabs) == ["cl_a", "cl_b"]

    async def test_list_collabs_filters_by_status(self, collab_service, memory_store):
        memory_store.put(make_collab(collab_id="cl_a", creator_id="u.a"))
        memory_store.put(make_collab(collab_id="cl_b", creator_id="u.b", status=CollabStatus.ENDED))

        result = await collab_service.list_collabs(status=[CollabStatus.OPEN])

        assert [c.collab_id for c in result.collabs] == ["cl_a"]
        assert result.next_cursor is None

    async def test_list_collabs_paginates(self, collab_service, memory_store):
        for suffix in "abc":
            memory_store.put(make_collab(collab_id=f"cl_{suffix}", creator_id=f"u.{suffix}"))

        first = await collab_service.list_collabs(page_size=2)
        second = await collab_service.list_collabs(page_size=2, cursor=first.next_cursor)

        assert [c.collab_id for c in first.collabs] == ["cl_c", "cl_b"]
        assert [c.collab_id for c in second.collabs] == ["cl_a"]
        assert second.next_cursor is None

    async def test_my_active_collab(self, collab_service, memory_store):
        assert await collab_service.get_my_active_collab(CREATOR_ID) is None

        memory_store.put(make_collab(status=CollabStatus.SETTING_UP))

        active = await collab_service.get_my_active_collab(CREATOR_ID)
        assert active is not None
        assert active.collab_id == "cl_test"

    async def test_delete_open_collab(self, collab_service, memory_store):
        memory_store.put(make_collab())

        await collab_service.delete_collab("cl_test", CREATOR_ID)

        assert memory_store.collabs == {}

    async def test_delete_requires_creator(self, collab_service, memory_store):
        memory_store.put(make_collab())

        with pytest.raises(AppError) as exc_info:
            await collab_service.delete_collab("cl_test", PARTNER_IDS[0])

        assert exc_info.value.errcode == AppErrorCode.E_FORBIDDEN.value
        assert "cl_test" in memory_store.collabs

    async def test_delete_requires_open_status(self, collab_service, memory_store):
        memory_store.put(make_collab(status=CollabStatus.SETTING_UP))

        with pytest.raises(AppError) as exc_info:
            await collab_service.delete_collab("cl_test", CREATOR_ID)

        assert exc_info.value.errcode == AppErrorCode.E_COLLAB_NOT_OPEN.value


class TestRefreshStreamInfo:
    async def test_updates_display_fields_without_status_change(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(max_partners=1, partners=PARTNER_IDS[:1]))
        fake_resolver.infos[CREATOR_VIDEO] = StreamInfo(title="Now live", view_count=321, is_live=True)

        collab = await collab_service.refresh_stream_info("cl_test")

        snapshot = collab.slot(0).last_known_status
        assert snapshot.title == "Now live"
        assert snapshot.view_count == 321
        assert snapshot.is_live is True
        assert snapshot.phase == StreamPhase.NO_DATA
        assert collab.slot(1).last_known_status is None
        assert collab.status == CollabStatus.OPEN
        assert collab.last_status_check is None
        assert fake_resolver.calls == []

    async def test_nothing_available_skips_write(self, collab_service, memory_store):
        memory_store.put(make_collab(max_partners=1))

        collab = await collab_service.refresh_stream_info("cl_test")

        assert collab.version == 1
        assert memory_store.update_calls == []

    async def test_concurrent_status_pass_is_retried(self, collab_service, memory_store, fake_resolver):
        """A status write landing between the fetch and the write does not fail the refresh."""
        memory_store.put(make_collab(max_partners=1, partners=PARTNER_IDS[:1]))
        fake_resolver.infos[PARTNER_VIDEOS[0]] = StreamInfo(title="Partner stream", like_count=7)
        memory_store.inject_conflicts(1)

        collab = await collab_service.refresh_stream_info("cl_test")

        assert len(memory_store.update_calls) == 2
        assert collab.version == 3
        assert collab.slot(1).last_known_status.title == "Partner stream"
        assert collab.slot(1).last_known_status.like_count == 7

    async def test_second_conflict_propagates(self, collab_service, memory_store, fake_resolver):
        memory_store.put(make_collab(max_partners=1))
        fake_resolver.infos[CREATOR_VIDEO] = StreamInfo(title="Now live")
        memory_store.inject_conflicts(2)

        with pytest.raises(AppError) as exc_info:
            await collab_service.refresh_stream_info("cl_test")

        assert exc_info.value.errcode == AppErrorCode.E_COLLAB_VERSION_CONFLICT.value
