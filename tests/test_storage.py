"""Tests for the local key/value stores and the request log."""

import json

from fluentx.logger import RequestLogger
from fluentx.storage import USER_ID_KEY, LocalStore, MemoryStore


class TestMemoryStore:
    def test_get_set_remove(self):
        store = MemoryStore()
        store.set(USER_ID_KEY, "stu-1")
        assert store.get(USER_ID_KEY) == "stu-1"
        store.remove(USER_ID_KEY)
        store.remove(USER_ID_KEY)
        assert store.get(USER_ID_KEY, "none") == "none"


class TestLocalStore:
    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "state" / "state.json"
        LocalStore(path).set(USER_ID_KEY, "stu-1")
        assert LocalStore(path).get(USER_ID_KEY) == "stu-1"
        assert json.loads(path.read_text()) == {USER_ID_KEY: "stu-1"}

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        assert LocalStore(path).items() == {}

    def test_clear(self, tmp_path):
        path = tmp_path / "state.json"
        store = LocalStore(path)
        store.set("a", 1)
        store.clear()
        assert LocalStore(path).items() == {}
        assert list(tmp_path.iterdir()) == [path]


class TestRequestLogger:
    def test_most_recent_first_and_bounded(self):
        logger = RequestLogger(max_logs=2)
        for path in ("/a", "/b", "/c"):
            logger.log_response(logger.log_request("get", path), 200)
        logs = logger.get_logs()
        assert [log["path"] for log in logs] == ["/c", "/b"]
        assert logs[0]["method"] == "GET"
        assert logs[0]["status"] == "success"
        assert logs[0]["response_time_ms"] >= 0

    def test_error_status(self):
        logger = RequestLogger()
        log_id = logger.log_request("POST", "/schedule/book")
        logger.log_response(log_id, 409, "Slot already booked")
        entry = logger.get_logs(limit=1)[0]
        assert entry["status"] == "error"
        assert entry["error"] == "Slot already booked"

    def test_missing_response_is_error(self):
        logger = RequestLogger()
        logger.log_response(logger.log_request("GET", "/me"), error="timeout")
        assert logger.get_logs()[0]["status"] == "error"
        logger.clear_logs()
        assert logger.get_logs() == []
