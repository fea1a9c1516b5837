"""Periodic evaluator retraining.

Meant to be run from cron or a scheduler. Retrains only when the active
evaluator is older than ``RETRAIN_INTERVAL_DAYS``, unless ``--force`` is given.
SIGTERM and SIGINT cancel a running job; the active model is left untouched.
"""

import argparse
import logging
import signal
import sys

from brightpath.core.config import get_settings
from brightpath.db.session import SessionLocal
from brightpath.services.retraining import RetrainJob, retrain, retrain_due

logger = logging.getLogger("brightpath.retrain")

CANCEL_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def install_cancel_handlers(job: RetrainJob) -> dict:
    """Route termination signals to ``job.cancel``. Returns the previous handlers."""

    def handle(signum, frame):
        logger.warning(f"Received {signal.Signals(signum).name}, cancelling retraining")
        job.cancel()

    return {signum: signal.signal(signum, handle) for signum in CANCEL_SIGNALS}


def restore_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Retrain the schedule evaluator")
    parser.add_argument("--force", action="store_true", help="retrain even if not due")
    parser.add_argument("--timeout", type=float, default=None, help="timeout in seconds")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with SessionLocal() as session:
        if not args.force and not retrain_due(session):
            logger.info("Evaluator is recent enough, nothing to do")
            return 0
        job = RetrainJob(args.timeout or settings.retrain_timeout_seconds)
        previous = install_cancel_handlers(job)
        try:
            model = retrain(session, job)
        finally:
            restore_handlers(previous)

    return 0 if model is not None else 1


if __name__ == "__main__":
    sys.exit(main())
