import pytest

from avara.jobs import worker


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_registry_has_scheduled_jobs():
    assert set(worker.JOB_REGISTRY) == {"featured_teacher", "sync_stale_feeds"}


@pytest.mark.asyncio
async def test_featured_teacher_job_raises_when_selection_fails(monkeypatch):
    from avara.jobs import featured_teacher_job
    from avara.models.domain.user_domain import SelectionOutcome

    class FailingService:
        async def select_featured_teacher(self):
            return SelectionOutcome(
                success=False, message="failed", primary_error="a", fallback_error="b"
            )

    monkeypatch.setattr(
        "avara.jobs.featured_teacher_job.featured_teacher_service", FailingService()
    )

    with pytest.raises(featured_teacher_job.FeaturedTeacherJobError):
        await featured_teacher_job.run_featured_teacher_job()
