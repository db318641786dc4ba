import importlib

from lesson_pipeline import settings as project_settings


def reload_settings():
    return importlib.reload(project_settings)


def test_lesson_lock_shares_the_broker_by_default(monkeypatch):
    monkeypatch.delenv("LESSON_LOCK_REDIS_URL", raising=False)
    monkeypatch.delenv("CELERY_TASK_ALWAYS_EAGER", raising=False)
    monkeypatch.setenv("CELERY_BROKER_URL", "redis://broker:6379/0")

    conf = reload_settings()

    assert conf.LESSON_LOCK_REDIS_URL == "redis://broker:6379/0"


def test_eager_mode_uses_process_local_lock(monkeypatch):
    monkeypatch.delenv("LESSON_LOCK_REDIS_URL", raising=False)
    monkeypatch.setenv("CELERY_TASK_ALWAYS_EAGER", "true")

    assert reload_settings().LESSON_LOCK_REDIS_URL == ""


def test_lesson_lock_url_can_be_overridden(monkeypatch):
    monkeypatch.setenv("LESSON_LOCK_REDIS_URL", "redis://locks:6379/3")
    assert reload_settings().LESSON_LOCK_REDIS_URL == "redis://locks:6379/3"

    monkeypatch.setenv("LESSON_LOCK_REDIS_URL", "")
    assert reload_settings().LESSON_LOCK_REDIS_URL == ""
