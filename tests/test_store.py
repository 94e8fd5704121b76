from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from accounts_service.errors import NotFound, StoreFailure, ValidationFailure
from accounts_service.models import User
from accounts_service.storage import FileStorage
from accounts_service.store import UserStore


def _user(email: str, **fields: object) -> User:
    return User(id="", email=email, password="$2b$04$not-a-real-hash", **fields)


@pytest.fixture()
def storage(tmp_path: Path) -> FileStorage:
    medium = FileStorage(tmp_path / "users.json")
    medium.ensure()
    return medium


@pytest.fixture()
def store(storage: FileStorage) -> UserStore:
    return UserStore(storage)


def test_sequential_creates_assign_increasing_ids(store: UserStore) -> None:
    created = [store.create(_user(f"user{i}@example.com")) for i in range(5)]

    assert [user.id for user in created] == ["1", "2", "3", "4", "5"]
    assert [user.id for user in store.list()] == ["1", "2", "3", "4", "5"]


def test_create_get_delete_scenario(storage: FileStorage) -> None:
    storage.write_all(
        json.dumps([{"id": "1", "email": "a@x.com", "password": "hashed"}]).encode("utf-8")
    )
    store = UserStore(storage)

    created = store.create(_user("b@x.com"))
    assert created.id == "2"
    assert store.get_by_id("2") == created

    store.delete("2")
    assert [user.id for user in store.list()] == ["1"]


def test_id_follows_last_record_not_count(storage: FileStorage) -> None:
    storage.write_all(
        json.dumps(
            [
                {"id": "1", "email": "a@x.com", "password": "h"},
                {"id": "7", "email": "b@x.com", "password": "h"},
            ]
        ).encode("utf-8")
    )
    store = UserStore(storage)

    assert store.create(_user("c@x.com")).id == "8"


def test_lookups_raise_not_found(store: UserStore) -> None:
    store.create(_user("owner@example.com"))

    assert store.get_by_email("owner@example.com").id == "1"
    with pytest.raises(NotFound):
        store.get_by_id("42")
    with pytest.raises(NotFound):
        store.get_by_email("missing@example.com")


def test_duplicate_email_is_rejected(store: UserStore) -> None:
    store.create(_user("dup@example.com"))
    with pytest.raises(ValidationFailure):
        store.create(_user("dup@example.com"))
    assert len(store.list()) == 1


def test_update_replaces_matching_record_in_place(store: UserStore) -> None:
    first = store.create(_user("first@example.com"))
    store.create(_user("second@example.com"))

    store.update(User(id=first.id, email="first@example.com", password="new-hash", first_name="Ada"))

    users = store.list()
    assert [user.id for user in users] == ["1", "2"]
    assert users[0].password == "new-hash"
    assert users[0].first_name == "Ada"


def test_update_and_delete_of_unknown_id_leave_collection_unchanged(store: UserStore) -> None:
    store.create(_user("only@example.com"))
    before = store.list()

    store.update(User(id="99", email="ghost@example.com", password="h"))
    store.delete("99")

    assert store.list() == before


def test_persisted_file_is_indented_json_array(store: UserStore, storage: FileStorage) -> None:
    store.create(_user("a@x.com", profile={"team": "core"}))

    text = storage.path.read_text(encoding="utf-8")
    assert text.startswith("[\n  {")
    decoded = json.loads(text)
    assert decoded[0]["email"] == "a@x.com"
    assert decoded[0]["profile"] == {"team": "core"}


@pytest.mark.parametrize(
    "content",
    [
        b"not json",
        b'{"id": "1"}',
        b'["just a string"]',
        b'[{"id": "1", "email": "a@x.com"}]',
    ],
)
def test_malformed_content_raises_store_failure(storage: FileStorage, content: bytes) -> None:
    storage.write_all(content)
    store = UserStore(storage)

    with pytest.raises(StoreFailure):
        store.list()


def test_non_numeric_last_id_raises_store_failure(storage: FileStorage) -> None:
    storage.write_all(json.dumps([{"id": "abc", "email": "a@x.com", "password": "h"}]).encode("utf-8"))
    store = UserStore(storage)

    with pytest.raises(StoreFailure):
        store.create(_user("b@x.com"))


def test_missing_file_raises_store_failure(tmp_path: Path) -> None:
    store = UserStore(FileStorage(tmp_path / "absent.json"))

    with pytest.raises(StoreFailure):
        store.list()


class _FailingWrites:
    def __init__(self, inner: FileStorage, failures: int) -> None:
        self._inner = inner
        self._failures = failures

    def read_all(self) -> bytes:
        return self._inner.read_all()

    def write_all(self, data: bytes) -> None:
        if self._failures > 0:
            self._failures -= 1
            raise OSError("disk full")
        self._inner.write_all(data)


def test_lock_is_released_after_write_failure(storage: FileStorage) -> None:
    store = UserStore(_FailingWrites(storage, failures=1))

    with pytest.raises(StoreFailure):
        store.create(_user("a@x.com"))
    assert not store._lock.locked()

    assert store.create(_user("a@x.com")).id == "1"


def test_concurrent_creates_produce_distinct_sequential_ids(store: UserStore) -> None:
    workers = 16
    barrier = threading.Barrier(workers)
    results: list[str] = []
    errors: list[BaseException] = []
    results_lock = threading.Lock()

    def register(index: int) -> None:
        barrier.wait()
        try:
            created = store.create(_user(f"worker{index}@example.com"))
        except BaseException as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)
            return
        with results_lock:
            results.append(created.id)

    threads = [threading.Thread(target=register, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert not errors
    assert sorted(results, key=int) == [str(i) for i in range(1, workers + 1)]
    assert len(store.list()) == workers


def test_update_reports_whether_a_record_matched(store: UserStore) -> None:
    user = store.create(_user("a@x.com"))

    assert store.update(User(id=user.id, email="a@x.com", password="h2")) is True
    assert store.update(User(id="99", email="ghost@x.com", password="h")) is False


def test_update_rejects_email_held_by_another_record(store: UserStore) -> None:
    first = store.create(_user("a@x.com"))
    store.create(_user("b@x.com"))

    with pytest.raises(ValidationFailure):
        store.update(User(id=first.id, email="B@X.com", password="h"))
    assert [user.email for user in store.list()] == ["a@x.com", "b@x.com"]

    assert store.update(User(id=first.id, email="A@x.com", password="h")) is True


def test_email_lookups_ignore_case(storage: FileStorage) -> None:
    storage.write_all(json.dumps([{"id": "1", "email": "A@x.com", "password": "h"}]).encode("utf-8"))
    store = UserStore(storage)

    assert store.get_by_email("a@x.com").id == "1"
    with pytest.raises(ValidationFailure):
        store.create(_user("a@X.COM"))


class _FailingReads:
    def __init__(self, inner: FileStorage, bad_read: object) -> None:
        self._inner = inner
        self._bad_read = bad_read

    def read_all(self) -> bytes:
        bad_read, self._bad_read = self._bad_read, None
        if isinstance(bad_read, Exception):
            raise bad_read
        if bad_read is not None:
            return bad_read  # type: ignore[return-value]
        return self._inner.read_all()

    def write_all(self, data: bytes) -> None:
        self._inner.write_all(data)


@pytest.mark.parametrize("bad_read", [OSError("unreadable"), b"{not json"], ids=["io-error", "decode-error"])
@pytest.mark.parametrize("operation", ["create", "update", "delete"])
def test_lock_is_released_after_read_failure(storage: FileStorage, bad_read: object, operation: str) -> None:
    UserStore(storage).create(_user("seed@x.com"))
    store = UserStore(_FailingReads(storage, bad_read))
    mutations = {
        "create": lambda: store.create(_user("new@x.com")),
        "update": lambda: store.update(User(id="1", email="seed@x.com", password="h2")),
        "delete": lambda: store.delete("1"),
    }

    with pytest.raises(StoreFailure):
        mutations[operation]()
    assert not store._lock.locked()

    mutations[operation]()


def test_concurrent_email_changes_to_same_address_leave_one_owner(store: UserStore) -> None:
    first = store.create(_user("a@x.com"))
    second = store.create(_user("b@x.com"))
    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    outcomes_lock = threading.Lock()

    def change_email(user: User) -> None:
        barrier.wait()
        try:
            outcome: object = store.update(User(id=user.id, email="c@x.com", password=user.password))
        except ValidationFailure as exc:
            outcome = exc
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=change_email, args=(user,)) for user in (first, second)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sum(1 for outcome in outcomes if outcome is True) == 1
    assert sum(1 for outcome in outcomes if isinstance(outcome, ValidationFailure)) == 1
    emails = [user.email for user in store.list()]
    assert sorted(emails) in (["a@x.com", "c@x.com"], ["b@x.com", "c@x.com"])


def test_readers_see_whole_collections_while_writers_run(store: UserStore) -> None:
    writers = 4
    per_writer = 10
    done = threading.Event()
    reader_errors: list[BaseException] = []
    seen_sizes: list[int] = []

    def read_until_done() -> None:
        while not done.is_set():
            try:
                seen_sizes.append(len(store.list()))
            except BaseException as exc:  # pragma: no cover - surfaced by the assertion below
                reader_errors.append(exc)
                return

    def write(worker: int) -> None:
        for index in range(per_writer):
            store.create(_user(f"w{worker}-{index}@example.com"))

    reader = threading.Thread(target=read_until_done)
    reader.start()
    threads = [threading.Thread(target=write, args=(i,)) for i in range(writers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    done.set()
    reader.join(timeout=30)

    assert not reader_errors
    assert seen_sizes == sorted(seen_sizes)
    assert len(store.list()) == writers * per_writer
