from workflow_catalog.models.import_session import ImportSessionStatus
from workflow_catalog.services.intake import ImportIntake
from workflow_catalog.services.progress_tracker import ProgressReporter
from workflow_catalog.services.session_manager import SessionManager
from workflow_catalog.services.step_processor import StepProcessor

from tests.factories import FailingAnalyzer, intake_file


def _start(db, count):
    files = [intake_file(f"flow-{i}.json", name=f"Flow {i}") for i in range(count)]
    return ImportIntake(db).start_import(files, "sk-test").session_id


def test_no_session_reports_nothing(db) -> None:
    reporter = ProgressReporter(db)

    assert reporter.get_progress() is None
    assert reporter.get_progress("missing") is None


def test_fresh_session(db) -> None:
    session_id = _start(db, 4)

    progress = ProgressReporter(db).get_progress(session_id)

    assert progress.session_id == session_id
    assert progress.status == ImportSessionStatus.ACTIVE
    assert (progress.total_files, progress.processed_files, progress.pending_files) == (4, 0, 4)
    assert progress.percent == 0
    assert progress.current_file == ""
    assert progress.is_complete is False
    assert progress.has_error is False
    assert progress.error_message is None


def test_defaults_to_most_recent_active_session(db) -> None:
    _start(db, 1)
    latest = _start(db, 2)

    assert ProgressReporter(db).get_progress().session_id == latest


def test_zero_total_reports_zero_percent(db) -> None:
    session = SessionManager(db).create(0, "sk-test", "tests")

    assert ProgressReporter(db).get_progress(session.id).percent == 0


def test_progress_after_partial_failure(db) -> None:
    session_id = _start(db, 4)
    processor = StepProcessor(db, FailingAnalyzer(fail_names={"Flow 1"}))
    processor.process_next(session_id)
    processor.process_next(session_id)

    progress = ProgressReporter(db).get_progress(session_id)

    assert (progress.processed_files, progress.failed_files, progress.pending_files) == (1, 1, 2)
    assert progress.percent == 50
    assert progress.has_error is True
    assert progress.error_message == "1 file failed"


def test_current_file_is_the_item_in_flight(db) -> None:
    session_id = _start(db, 2)
    queue = SessionManager(db).queue
    item = queue.next_pending(session_id)
    queue.claim(item.id)

    assert ProgressReporter(db).get_progress(session_id).current_file == "flow-0.json"


def test_completed_session_with_errors(db) -> None:
    session_id = _start(db, 2)
    processor = StepProcessor(db, FailingAnalyzer(fail_names={"Flow 0", "Flow 1"}))
    while not processor.process_next(session_id).completed:
        pass

    progress = ProgressReporter(db).get_progress(session_id)

    assert progress.is_complete is True
    assert progress.percent == 100
    assert progress.error_message == "2 files failed"


def test_reporting_has_no_side_effects(db) -> None:
    session_id = _start(db, 1)
    before = SessionManager(db).get(session_id).last_update

    reporter = ProgressReporter(db)
    reporter.get_progress(session_id)
    reporter.get_progress()

    assert SessionManager(db).get(session_id).last_update == before
