"""InfluxDB sink.

Wraps the batching write API of influxdb-client. Writes are fire-and-forget:
points are buffered and flushed in the background, failures are logged by the
error callback. close() flushes whatever is still buffered.

Usage:
    with InfluxSink(url, token, org, bucket) as sink:
        sink.write(record)
"""

from __future__ import annotations

import logging
from typing import Any

from influxdb_client import InfluxDBClient, Point, WriteOptions, WritePrecision

from discord_influx.config.settings import AppSettings
from discord_influx.export.records import ExportRecord

log = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1_000
DEFAULT_FLUSH_INTERVAL_MS = 1_000


def to_point(record: ExportRecord) -> Point:
    """Convert an export record into an InfluxDB point with ns precision."""
    point = Point(record.measurement)
    for key, value in record.tags.items():
        point = point.tag(key, value)
    for key, value in record.fields.items():
        point = point.field(key, value)
    return point.time(record.time_ns, WritePrecision.NS)


class InfluxSink:
    """Buffered writer for export records."""

    def __init__(
        self,
        url: str,
        token: str,
        org: str,
        bucket: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS,
    ) -> None:
        self.org = org
        self.bucket = bucket
        self.written = 0
        self.failed_batches = 0
        self._client = InfluxDBClient(url=url, token=token, org=org)
        self._write_api = self._client.write_api(
            write_options=WriteOptions(
                batch_size=batch_size,
                flush_interval=flush_interval_ms,
            ),
            error_callback=self._on_error,
        )
        self._closed = False

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "InfluxSink":
        settings.require_influx()
        return cls(
            url=settings.influxdb_url,
            token=settings.influxdb_token,
            org=settings.influxdb_org,
            bucket=settings.influxdb_bucket,
        )

    def _on_error(self, conf: Any, data: Any, exception: Exception) -> None:
        self.failed_batches += 1
        log.error(f"InfluxDB write failed: {exception}")

    def write(self, record: ExportRecord) -> None:
        if self._closed:
            raise RuntimeError("Sink is closed")
        self._write_api.write(bucket=self.bucket, org=self.org, record=to_point(record))
        self.written += 1

    def close(self) -> None:
        """Flush buffered points and release the client."""
        if self._closed:
            return
        self._closed = True
        self._write_api.close()
        self._client.close()
        log.debug(f"Flushed InfluxDB sink ({self.written:,} points written)")

    def __enter__(self) -> "InfluxSink":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
