import pytest

from workflow_catalog.errors import NotFoundError, ValidationError
from workflow_catalog.models.queue_item import QueueItemStatus
from workflow_catalog.services.queue_store import QueueStore
from workflow_catalog.services.session_manager import SessionManager


@pytest.fixture
def queue(db) -> QueueStore:
    return QueueStore(db)


@pytest.fixture
def session_id(db) -> str:
    return SessionManager(db).create(3, "key", "tests").id


def _enqueue(queue, session_id, *names):
    return [queue.enqueue(session_id, name, f"in/{name}", "{}", 2) for name in names]


def test_enqueue_appends_pending_items_in_order(queue, session_id) -> None:
    items = _enqueue(queue, session_id, "a.json", "b.json", "c.json")

    assert [item.position for item in items] == [0, 1, 2]
    assert all(item.status == QueueItemStatus.PENDING for item in items)
    assert [item.file_name for item in queue.items(session_id)] == ["a.json", "b.json", "c.json"]


def test_next_pending_is_fifo(queue, session_id) -> None:
    first, second, _ = _enqueue(queue, session_id, "a.json", "b.json", "c.json")

    assert queue.next_pending(session_id).id == first.id
    queue.mark(first.id, QueueItemStatus.FAILED, error_message="bad")
    assert queue.next_pending(session_id).id == second.id


def test_next_pending_is_scoped_to_session(db, queue, session_id) -> None:
    other = SessionManager(db).create(1, "key", "tests").id
    _enqueue(queue, other, "other.json")

    assert queue.next_pending(session_id) is None


def test_claim_only_succeeds_once(queue, session_id) -> None:
    item, = _enqueue(queue, session_id, "a.json")

    assert queue.claim(item.id) is True
    assert queue.claim(item.id) is False
    assert queue.get(item.id).status == QueueItemStatus.PROCESSING
    assert queue.next_pending(session_id) is None


def test_mark_completed_sets_workflow_and_processed_at(queue, session_id) -> None:
    item, = _enqueue(queue, session_id, "a.json")
    queue.claim(item.id)

    marked = queue.mark(item.id, QueueItemStatus.COMPLETED, workflow_id="abc123", error_message="ignored")

    assert marked.workflow_id == "abc123"
    assert marked.error_message is None
    assert marked.processed_at is not None


def test_mark_failed_keeps_only_error(queue, session_id) -> None:
    item, = _enqueue(queue, session_id, "a.json")

    marked = queue.mark(item.id, QueueItemStatus.FAILED, workflow_id="abc123")

    assert marked.workflow_id is None
    assert marked.error_message == "Unknown error"
    assert marked.processed_at is not None


def test_mark_completed_requires_workflow_id(queue, session_id) -> None:
    item, = _enqueue(queue, session_id, "a.json")

    with pytest.raises(ValidationError):
        queue.mark(item.id, QueueItemStatus.COMPLETED)


def test_mark_unknown_item(queue) -> None:
    with pytest.raises(NotFoundError):
        queue.mark("missing", QueueItemStatus.FAILED)


def test_current_processing_and_counts(queue, session_id) -> None:
    first, second, third = _enqueue(queue, session_id, "a.json", "b.json", "c.json")
    queue.claim(first.id)
    queue.claim(second.id)

    assert queue.current_processing(session_id).id == second.id
    assert queue.pending_count(session_id) == 1

    counts = queue.status_counts(session_id)
    assert counts[QueueItemStatus.PROCESSING] == 2
    assert counts[QueueItemStatus.PENDING] == 1
    assert counts[QueueItemStatus.COMPLETED] == 0


def test_cancel_pending_leaves_other_items(queue, session_id) -> None:
    done, in_flight, waiting = _enqueue(queue, session_id, "a.json", "b.json", "c.json")
    queue.claim(done.id)
    queue.mark(done.id, QueueItemStatus.COMPLETED, workflow_id="w1")
    queue.claim(in_flight.id)

    assert queue.cancel_pending(session_id) == 1

    assert queue.get(done.id).status == QueueItemStatus.COMPLETED
    assert queue.get(in_flight.id).status == QueueItemStatus.PROCESSING
    cancelled = queue.get(waiting.id)
    assert cancelled.status == QueueItemStatus.CANCELLED
    assert cancelled.processed_at is not None


def test_reset_stale_processing(queue, session_id) -> None:
    item, = _enqueue(queue, session_id, "a.json")
    queue.claim(item.id)

    assert queue.reset_stale_processing(session_id) == 1
    assert queue.next_pending(session_id).id == item.id
