"""Discord-InfluxDB exporter.

Exports message and reaction counts of Discord channels to InfluxDB, either
retroactively from message history or continually as messages arrive.

Usage:
    python -m discord_influx.export historic GUILD[/CHANNEL] ...
    python -m discord_influx.export live GUILD[/CHANNEL] ...
"""
