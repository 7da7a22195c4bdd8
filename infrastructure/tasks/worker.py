"""Convenience entry point for running the Celery worker.

Deployments normally invoke the Celery CLI:

    celery -A infrastructure.tasks.config.celery:celery_app worker -Q high,default,low
    celery -A infrastructure.tasks.config.celery:celery_app beat
"""
from __future__ import annotations

import sys

from .config.celery import celery_app


def main() -> None:
    # Extra CLI flags pass straight through, e.g. `--beat` for a single-process dev setup
    celery_app.worker_main(
        argv=["worker", "--hostname=worker@%h", "--queues=high,default,low", "--loglevel=INFO", *sys.argv[1:]]
    )


if __name__ == "__main__":
    main()
