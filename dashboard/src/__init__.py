"""
Wall dashboard backend package.

Polls the local energy gateway, derives self-consumption metrics, keeps a
durable sample log with per-day baselines, raises threshold alerts, rolls up
hourly analytics and pushes everything to wall displays over a live stream.
Weather, temperature and crypto adapters are thin cached pass-throughs.

CHANGELOG:
- 2026-10-02: Initial creation

TODO:
- None
"""
