import pytest

from services.account import clear_local_data
from services.errors import RemoteOperationError
from services.local_mirror import LocalMirror, ProfileMirror
from services.profiles import PROFILES_TABLE, ProfileRepository, validate_profile
from services.sync_coordinator import SyncCoordinator
from services.sync_queue import SyncQueue
from services.workouts import WorkoutRepository


PROFILE = {
    "user_age": 34,
    "user_weight": 80,
    "user_weight_unit": "kg",
    "user_fitness_level": 3,
    "user_physical_limitations": "left knee",
}


class FakeRemote:
    def __init__(self, *, broken=False, rows=None):
        self.broken = broken
        self.rows = rows or []
        self.calls = []

    def _call(self, *call):
        self.calls.append(call)
        if self.broken:
            raise RemoteOperationError("network unreachable")

    async def insert(self, table, record):
        self._call("insert", table, record["id"])

    async def upsert(self, table, record, *, on_conflict):
        self._call("upsert", table, record[on_conflict])

    async def update(self, table, record_id, changes):
        self._call("update", table, record_id)

    async def delete(self, table, record_id):
        self._call("delete", table, record_id)

    async def select(self, table, filters=None, *, order=None, descending=False):
        self._call("select", table, dict(filters or {}))
        filters = filters or {}
        return [row for row in self.rows if all(row.get(k) == v for k, v in filters.items())]


@pytest.fixture()
def queue(session_factory):
    return SyncQueue(session_factory=session_factory)


@pytest.fixture()
def profiles(session_factory):
    return ProfileMirror(session_factory=session_factory)


def _repository(remote, queue, profiles, *, online=True):
    coordinator = SyncCoordinator(queue, remote, online=online)
    return ProfileRepository(remote, profiles, coordinator)


@pytest.mark.asyncio
async def test_save_online_upserts_and_caches(queue, profiles):
    remote = FakeRemote()
    repo = _repository(remote, queue, profiles)

    assert await repo.save_profile("user-1", PROFILE) is True

    assert remote.calls == [("upsert", PROFILES_TABLE, "user-1")]
    cached = await profiles.get("user-1")
    assert cached["user_weight"] == 80.0
    assert cached["user_physical_limitations"] == "left knee"
    assert cached["updated_at"]
    assert await queue.count() == 0


@pytest.mark.asyncio
async def test_save_failure_caches_and_queues_update_keyed_by_user(queue, profiles):
    remote = FakeRemote(broken=True)
    repo = _repository(remote, queue, profiles)

    assert await repo.save_profile("user-1", PROFILE) is False

    assert (await profiles.get("user-1"))["user_age"] == 34
    pending = await queue.drain_order()
    assert len(pending) == 1
    assert pending[0].type == "update"
    assert pending[0].table == PROFILES_TABLE
    assert pending[0].record_id == "user-1"
    assert pending[0].data["user_id"] == "user-1"
    assert pending[0].data["user_fitness_level"] == 3


@pytest.mark.asyncio
async def test_save_offline_does_not_call_remote(queue, profiles):
    remote = FakeRemote()
    repo = _repository(remote, queue, profiles, online=False)

    assert await repo.save_profile("user-1", PROFILE) is False

    assert remote.calls == []
    assert repo.coordinator.sync_status.pending == 1


@pytest.mark.asyncio
async def test_save_rejects_invalid_profile(queue, profiles):
    repo = _repository(FakeRemote(), queue, profiles)

    with pytest.raises(ValueError):
        await repo.save_profile("", PROFILE)
    with pytest.raises(ValueError):
        await repo.save_profile("user-1", dict(PROFILE, user_fitness_level=6))

    assert await queue.count() == 0
    assert await profiles.get("user-1") is None


def test_validate_profile_checks_each_field():
    assert validate_profile(dict(PROFILE, user_physical_limitations=""))["user_weight"] == 80.0
    for bad in (
        dict(PROFILE, user_age=0),
        dict(PROFILE, user_age=True),
        dict(PROFILE, user_weight=-1),
        dict(PROFILE, user_weight_unit="stone"),
        dict(PROFILE, user_fitness_level=2.5),
        dict(PROFILE, user_physical_limitations=None),
    ):
        with pytest.raises(ValueError):
            validate_profile(bad)
    incomplete = dict(PROFILE)
    del incomplete["user_age"]
    with pytest.raises(ValueError, match="user_age"):
        validate_profile(incomplete)


@pytest.mark.asyncio
async def test_load_profile_prefers_remote_then_cache(queue, profiles):
    remote_row = dict(PROFILE, user_id="user-1", user_age=35, updated_at="2024-02-02T08:00:00Z")
    remote = FakeRemote(rows=[remote_row])
    repo = _repository(remote, queue, profiles)

    loaded = await repo.load_profile("user-1")
    assert loaded["user_age"] == 35

    remote.broken = True
    cached = await repo.load_profile("user-1")
    assert cached["user_age"] == 35
    assert cached["updated_at"] == "2024-02-02T08:00:00Z"

    assert await repo.load_profile("user-2") is None
    assert await repo.load_profile("") is None


@pytest.mark.asyncio
async def test_load_profile_missing_remotely_falls_back_to_cache(queue, profiles):
    remote = FakeRemote()
    repo = _repository(remote, queue, profiles, online=False)
    await repo.save_profile("user-1", PROFILE)

    repo.coordinator.set_online(True)
    assert (await repo.load_profile("user-1"))["user_weight_unit"] == "kg"


@pytest.mark.asyncio
async def test_clear_local_data_wipes_queue_and_caches(session_factory, queue, profiles):
    remote = FakeRemote()
    coordinator = SyncCoordinator(queue, remote, online=False)
    workouts_mirror = LocalMirror(session_factory=session_factory)
    workouts = WorkoutRepository(remote, workouts_mirror, coordinator)
    profile_repo = ProfileRepository(remote, profiles, coordinator)

    workout_id = await workouts.save_workout("user-1", {"workout_type": "strength"}, {})
    await profile_repo.save_profile("user-1", PROFILE)
    assert coordinator.sync_status.pending == 2

    await clear_local_data(coordinator, workouts_mirror, profiles)

    assert await queue.count() == 0
    assert coordinator.sync_status.pending == 0
    assert await workouts_mirror.get(workout_id) is None
    assert await profiles.get("user-1") is None
