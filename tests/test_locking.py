"""FileLock tests."""

from cimaise.core.locking import FileLock


def test_second_instance_cannot_acquire(tmp_path):
    path = tmp_path / "locks" / "daily.lock"
    first = FileLock(path)
    second = FileLock(path)

    assert first.try_acquire() is True
    assert path.exists()
    assert second.try_acquire() is False
    assert second.held is False

    first.release()
    assert second.try_acquire() is True
    second.release()


def test_held_instance_refuses_second_acquire(tmp_path):
    """A holder asking again gets False and keeps the lock it already has."""
    path = tmp_path / "daily.lock"
    lock = FileLock(path)

    assert lock.try_acquire() is True
    assert lock.try_acquire() is False
    assert lock.held is True
    assert FileLock(path).try_acquire() is False

    lock.release()
    lock.release()
    assert lock.held is False
    assert lock.try_acquire() is True
    lock.release()


def test_context_manager_releases(tmp_path):
    path = tmp_path / "daily.lock"

    with FileLock(path) as acquired:
        assert acquired is True
        assert FileLock(path).try_acquire() is False

    other = FileLock(path)
    assert other.try_acquire() is True
    other.release()


def test_unopenable_lock_file_reports_not_acquired(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file")

    assert FileLock(blocker / "daily.lock").try_acquire() is False
