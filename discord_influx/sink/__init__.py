"""Time-series sinks for export records."""

from discord_influx.sink.influx import InfluxSink, to_point

__all__ = ["InfluxSink", "to_point"]
