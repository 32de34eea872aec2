import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.api.repositories import TodoStats, build_assignments


@pytest.fixture
def user(repo):
    return repo.create_user("alice", "not-a-real-hash")


class TestUsers:
    def test_create_and_lookup(self, repo, user):
        assert user["id"] > 0
        assert user["username"] == "alice"
        assert user["created_at"] is not None
        assert repo.get_user_by_username("alice") == user
        assert repo.get_user_by_id(user["id"]) == user

    def test_lookup_is_case_sensitive(self, repo, user):
        assert repo.get_user_by_username("Alice") is None
        assert repo.get_user_by_id(9999) is None

    def test_duplicate_username_returns_none(self, repo, user):
        assert repo.create_user("alice", "other-hash") is None

    def test_duplicate_username_under_concurrency(self, repo):
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: repo.create_user("bob", "hash"), range(8)))
        created = [r for r in results if r is not None]
        assert len(created) == 1
        assert repo.get_user_by_username("bob")["id"] == created[0]["id"]


class TestTodos:
    def test_create_defaults(self, repo, user):
        todo = repo.create_todo(user["id"], "Buy milk")
        fetched = repo.get_todo_by_id(todo["id"])
        assert fetched == todo
        assert fetched["user_id"] == user["id"]
        assert fetched["completed"] is False
        assert fetched["completed_at"] is None
        assert fetched["priority"] == "medium"
        assert fetched["description"] is None
        assert fetched["category"] is None
        assert fetched["due_date"] is None
        assert fetched["created_at"] == fetched["updated_at"]

    def test_create_with_all_fields(self, repo, user):
        todo = repo.create_todo(user["id"], "Report", "Quarterly", "high", "work", "2026-12-31")
        assert todo["priority"] == "high"
        assert todo["description"] == "Quarterly"
        assert todo["category"] == "work"
        assert todo["due_date"] == "2026-12-31"

    def test_invalid_priority_defaults_to_medium(self, repo, user):
        assert repo.create_todo(user["id"], "x", priority="urgent")["priority"] == "medium"

    def test_create_for_unknown_user_fails(self, repo):
        assert repo.create_todo(4242, "Orphan") is None

    def test_list_is_newest_first_and_scoped(self, repo, user):
        other = repo.create_user("carol", "hash")
        first = repo.create_todo(user["id"], "first")
        second = repo.create_todo(user["id"], "second")
        repo.create_todo(other["id"], "not mine")

        todos = repo.get_todos_by_user_id(user["id"])
        assert [t["id"] for t in todos] == [second["id"], first["id"]]
        assert repo.get_todos_by_user_id(9999) == []

    def test_update_applies_only_given_fields(self, repo, user):
        todo = repo.create_todo(user["id"], "Old", "keep me", "low", "home")
        updated = repo.update_todo(todo["id"], {"title": "New", "completed": True})
        assert updated["title"] == "New"
        assert updated["completed"] is True
        assert updated["description"] == "keep me"
        assert updated["priority"] == "low"
        assert updated["category"] == "home"
        assert updated["id"] == todo["id"]
        assert updated["user_id"] == todo["user_id"]
        assert updated["created_at"] == todo["created_at"]
        assert updated["updated_at"] >= todo["updated_at"]

    def test_update_can_clear_nullable_fields(self, repo, user):
        todo = repo.create_todo(user["id"], "t", "desc", category="c", due_date="2027-01-01")
        updated = repo.update_todo(todo["id"], {"description": None, "category": None, "due_date": None})
        assert updated["description"] is None
        assert updated["category"] is None
        assert updated["due_date"] is None

    def test_empty_update_is_a_noop(self, repo, user):
        todo = repo.create_todo(user["id"], "Same")
        assert repo.update_todo(todo["id"], {}) == todo

    def test_update_missing_todo_returns_none(self, repo):
        assert repo.update_todo(12345, {"title": "nope"}) is None

    def test_update_rejects_unknown_columns(self, repo, user):
        todo = repo.create_todo(user["id"], "t")
        with pytest.raises(ValueError):
            repo.update_todo(todo["id"], {"user_id": 99})
        assert repo.get_todo_by_id(todo["id"])["user_id"] == user["id"]

    def test_delete(self, repo, user):
        todo = repo.create_todo(user["id"], "bye")
        assert repo.delete_todo(todo["id"]) is True
        assert repo.get_todo_by_id(todo["id"]) is None
        assert repo.delete_todo(todo["id"]) is False

    def test_ids_beyond_integer_range_are_not_found(self, repo):
        huge = 10**20
        assert repo.get_todo_by_id(huge) is None
        assert repo.update_todo(huge, {"title": "nope"}) is None
        assert repo.delete_todo(huge) is False

    def test_deleting_a_user_cascades_to_todos(self, repo, user):
        todo = repo.create_todo(user["id"], "t")
        conn = sqlite3.connect(repo.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("DELETE FROM users WHERE id = ?", (user["id"],))
        conn.commit()
        conn.close()
        assert repo.get_todo_by_id(todo["id"]) is None


class TestStats:
    def test_no_todos(self, repo, user):
        stats = repo.get_completed_todo_stats(user["id"])
        assert (stats.total, stats.completed, stats.completion_rate) == (0, 0, 0)

    def test_one_of_three_completed(self, repo, user):
        ids = [repo.create_todo(user["id"], f"t{i}")["id"] for i in range(3)]
        repo.update_todo(ids[0], {"completed": True})
        stats = repo.get_completed_todo_stats(user["id"])
        assert (stats.total, stats.completed, stats.completion_rate) == (3, 1, 33)

    def test_rate_rounds_half_up(self):
        assert TodoStats(total=8, completed=1).completion_rate == 13
        assert TodoStats(total=3, completed=2).completion_rate == 67
        assert TodoStats(total=1, completed=1).completion_rate == 100


class TestInitialization:
    def test_schema_creation_is_repeatable(self, repo):
        repo.init_schema()
        repo.init_schema()
        assert repo.create_user("dave", "hash") is not None

    def test_journal_mode_is_wal(self, repo):
        conn = sqlite3.connect(repo.db_path)
        try:
            assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        finally:
            conn.close()


class TestBuildAssignments:
    def test_qmark_placeholders(self):
        assignments, values = build_assignments({"title": "a", "completed": 1}, lambda _c: "?")
        assert assignments == ["title = ?", "completed = ?"]
        assert values == ["a", 1]

    def test_named_placeholders(self):
        assignments, values = build_assignments({"completed_at": None}, lambda c: f":{c}")
        assert assignments == ["completed_at = :completed_at"]
        assert values == [None]

    def test_rejects_identifiers_outside_the_allow_set(self):
        with pytest.raises(ValueError):
            build_assignments({"title = 'x'; DROP TABLE todos; --": 1}, lambda _c: "?")
        with pytest.raises(ValueError):
            build_assignments({"created_at": "2020-01-01"}, lambda _c: "?")
