import logging
from typing import Callable, Iterable, Optional
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)


class PipelineScheduler:
    """Fires pipeline runs on crontab schedules from a background thread."""

    def __init__(self, pipeline, scheduler: Optional[BackgroundScheduler] = None):
        self.pipeline = pipeline
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")

    def schedule(self, cron_expression: str, task: Callable, job_id: Optional[str] = None, **kwargs):
        trigger = CronTrigger.from_crontab(cron_expression, timezone="UTC")
        job = self.scheduler.add_job(
            task,
            trigger,
            id=job_id,
            kwargs=kwargs,
            max_instances=1,
            coalesce=True,
            replace_existing=job_id is not None,
        )
        logger.info(f"Scheduled job '{job.id}' with cron '{cron_expression}'")
        return job

    def schedule_pipeline(self, cron_expression: str, sources: Optional[Iterable[str]] = None):
        sources = list(sources) if sources else None
        return self.schedule(cron_expression, self.run_sources, job_id="pipeline_sweep", sources=sources)

    def run_sources(self, sources=None):
        """Job body: one sweep over the given (or all) sources."""
        summary = self.pipeline.run_all(sources)
        for source, failure in summary.failures.items():
            logger.error(f"Scheduled run for {source} failed at stage '{failure.stage}': {failure.cause}")
        return summary

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Pipeline scheduler started")

    def shutdown(self, wait: bool = False):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Pipeline scheduler stopped")
