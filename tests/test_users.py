import pytest
import yaml

from clubhouse.auth.users import ROLE_ADMIN, ROLE_USER, UserStore
from clubhouse.core.errors import DuplicateIdentity, InvalidRole, StorageError, UserNotFound


def test_create_defaults_to_user_role(store):
    u = store.create("a@x.com", "A", "hash-a")
    assert u.role == ROLE_USER
    assert len(u.id) == 24
    assert store.find_by_identity("a@x.com") == u
    assert store.get(u.id) == u


def test_find_by_identity_is_exact_match(store):
    store.create("a@x.com", "A", "hash-a")
    assert store.find_by_identity("A@x.com") is None
    assert store.find_by_identity("") is None
    assert store.find_by_identity("b@x.com") is None


def test_duplicate_identity_is_rejected_without_new_record(store):
    first = store.create("a@x.com", "A", "hash-a")
    with pytest.raises(DuplicateIdentity):
        store.create("a@x.com", "Other", "hash-b")
    assert store.list_users() == [first]


def test_list_users_keeps_creation_order(store):
    emails = ["c@x.com", "a@x.com", "b@x.com"]
    for e in emails:
        store.create(e, e[0].upper(), "h")
    assert [u.email for u in store.list_users()] == emails


def test_promote_then_demote_round_trip(store):
    u = store.create("a@x.com", "A", "h")
    assert store.set_role(u.id, ROLE_ADMIN).role == ROLE_ADMIN
    assert store.set_role(u.id, ROLE_USER).role == ROLE_USER
    assert store.get(u.id).role == "user"


def test_set_role_is_idempotent(store):
    u = store.create("a@x.com", "A", "h")
    store.set_role(u.id, ROLE_ADMIN)
    again = store.set_role(u.id, ROLE_ADMIN)
    assert again.role == ROLE_ADMIN
    assert [x.role for x in store.list_users()] == [ROLE_ADMIN]


@pytest.mark.parametrize("role", ["superuser", "", "Admin", None])
def test_set_role_rejects_unknown_roles(store, role):
    u = store.create("a@x.com", "A", "h")
    with pytest.raises(InvalidRole):
        store.set_role(u.id, role)
    assert store.get(u.id).role == ROLE_USER


def test_set_role_unknown_id(store):
    with pytest.raises(UserNotFound):
        store.set_role("0" * 24, ROLE_ADMIN)


def test_records_persist_across_store_instances(store, settings):
    u = store.create("a@x.com", "A", "h")
    store.set_role(u.id, ROLE_ADMIN)

    reopened = UserStore(settings.users_path)
    reopened.open()
    assert reopened.find_by_identity("a@x.com") == store.get(u.id)

    raw = yaml.safe_load(settings.users_path.read_text(encoding="utf-8"))
    assert raw["users"]["a@x.com"]["role"] == "admin"
    assert "password" not in raw["users"]["a@x.com"]


def test_external_edits_are_picked_up(store, settings):
    u = store.create("a@x.com", "A", "h")
    other = UserStore(settings.users_path)
    other.set_role(u.id, ROLE_ADMIN)
    assert store.get(u.id).role == ROLE_ADMIN


def test_open_creates_missing_directory(tmp_path):
    path = tmp_path / "nested" / "dir" / "users.yml"
    s = UserStore(path)
    s.open()
    assert path.parent.is_dir()
    assert s.list_users() == []


def test_corrupt_document_is_a_storage_error(tmp_path):
    path = tmp_path / "users.yml"
    path.write_text("users: [unclosed\n", encoding="utf-8")
    with pytest.raises(StorageError):
        UserStore(path).open()


def test_entries_without_id_survive_writes(tmp_path):
    path = tmp_path / "users.yml"
    path.write_text(
        yaml.safe_dump({"users": {"legacy@x.com": {"name": "Legacy", "role": "admin", "password_hash": "h"}}}),
        encoding="utf-8",
    )
    s = UserStore(path)
    s.open()
    legacy = s.find_by_identity("legacy@x.com")
    assert legacy is not None and legacy.role == ROLE_ADMIN
    assert len(legacy.id) == 24

    s.create("a@x.com", "A", "h")
    assert s.get(legacy.id) == legacy

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert raw["users"]["legacy@x.com"]["id"] == legacy.id
    assert set(raw["users"]) == {"legacy@x.com", "a@x.com"}


@pytest.mark.parametrize(
    "doc",
    [
        {"users": {"a@x.com": None}},
        {"users": {"a@x.com": "not-a-record"}},
        {"users": ["a@x.com"]},
    ],
)
def test_unparseable_entries_are_refused_not_dropped(tmp_path, doc):
    path = tmp_path / "users.yml"
    path.write_text(yaml.safe_dump(doc), encoding="utf-8")
    s = UserStore(path)
    with pytest.raises(StorageError):
        s.open()
    with pytest.raises(StorageError):
        s.create("b@x.com", "B", "h")
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == doc
