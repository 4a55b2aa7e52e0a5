"""Tests for the SettingsDatabase and JobLockDatabase."""

from datetime import UTC, datetime, timedelta

import pytest

from podhoard.db import JobLockDatabase, SettingsDatabase


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_settings_creates_defaults(settings_db: SettingsDatabase) -> None:
    """The singleton row is created with defaults on first read."""
    settings = await settings_db.get_settings()

    assert settings.id == "global"
    assert settings.max_download_concurrency == 5
    assert settings.auto_download is True
    assert settings.download_on_add is True
    assert settings.initial_download_count == 5
    assert settings.user_agent is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_settings(settings_db: SettingsDatabase) -> None:
    """Known fields are updated and persisted."""
    updated = await settings_db.update_settings(
        max_download_concurrency=2, user_agent="custom/1.0"
    )

    assert updated.max_download_concurrency == 2
    assert (await settings_db.get_settings()).user_agent == "custom/1.0"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_settings_rejects_unknown_fields(
    settings_db: SettingsDatabase,
) -> None:
    """Unknown field names raise ValueError."""
    with pytest.raises(ValueError, match="not_a_setting"):
        await settings_db.update_settings(not_a_setting=1)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_lock_is_unheld(lock_db: JobLockDatabase) -> None:
    """A lock that was never written reads as not held."""
    lock = await lock_db.get_lock("never")

    assert lock.is_locked is False
    assert lock.duration_minutes == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_set_and_clear_lock(lock_db: JobLockDatabase) -> None:
    """set_lock upserts; clear_lock resets the timestamp and duration."""
    now = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)
    await lock_db.set_lock("job", now, 30)
    await lock_db.set_lock("job", now + timedelta(minutes=1), 45)

    lock = await lock_db.get_lock("job")
    assert lock.locked_at == now + timedelta(minutes=1)
    assert lock.duration_minutes == 45
    assert len(await lock_db.get_locks()) == 1

    await lock_db.clear_lock("job")
    lock = await lock_db.get_lock("job")
    assert lock.is_locked is False
    assert lock.duration_minutes == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_clear_lock_only_for_matching_holder(lock_db: JobLockDatabase) -> None:
    """A timestamped clear leaves a lock re-acquired at another time alone."""
    first = datetime(2024, 5, 1, 8, 0, 0, 123456, tzinfo=UTC)
    second = first + timedelta(hours=2)
    await lock_db.set_lock("job", second, 60)

    assert await lock_db.clear_lock("job", first) is False
    assert (await lock_db.get_lock("job")).locked_at == second

    assert await lock_db.clear_lock("job", second) is True
    assert (await lock_db.get_lock("job")).is_locked is False
