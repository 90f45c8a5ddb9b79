from __future__ import annotations

import json
import logging
from typing import Sequence, Union

from resume_crawler.controller import ControllerClient
from resume_crawler.models import CrawlJob, ResultRecord

logger = logging.getLogger(__name__)


def dump_records(records: Sequence[ResultRecord]) -> str:
    return json.dumps(list(records), indent=2, ensure_ascii=False, default=str)


class BatchReporter:
    """Accumulates every record in memory; status messages are only logged."""

    def __init__(self) -> None:
        self._output: list[ResultRecord] = []

    @property
    def records(self) -> list[ResultRecord]:
        return list(self._output)

    def report_results(self, records: Sequence[ResultRecord], link: str) -> None:
        self._output.extend(records)
        logger.debug("collected %s records from %s", len(records), link)

    def report_status(self, message: str) -> None:
        logger.info("status: %s", message)

    def to_json(self) -> str:
        return dump_records(self._output)

    def close(self) -> None:
        pass


class IncrementalReporter:
    """Streams each link's records to the controller as soon as they are parsed."""

    def __init__(self, client: ControllerClient):
        self.client = client

    @property
    def records(self) -> list[ResultRecord]:
        return []

    def report_results(self, records: Sequence[ResultRecord], link: str) -> None:
        self.client.relay_results(f"Collected {link}", dump_records(records))

    def report_status(self, message: str) -> None:
        logger.info("status: %s", message)
        self.client.update_status(message)

    def to_json(self) -> str:
        return dump_records([])

    def close(self) -> None:
        self.client.close()


Reporter = Union[BatchReporter, IncrementalReporter]


def build_reporter(job: CrawlJob, client: ControllerClient | None = None) -> Reporter:
    if job.controller is None:
        return BatchReporter()
    if client is None:
        client = ControllerClient(job.controller, timeout_seconds=job.pool.request_timeout_seconds)
    return IncrementalReporter(client)
