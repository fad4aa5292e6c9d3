"""
RequestLens - operational analytics over municipal service-request logs.

SLA compliance, resolution times, complaint and neighborhood breakdowns,
channel attribution, month-over-month trends and volume anomalies, computed
as repeatable parameterized reports over a single normalized fact table.
"""

__version__ = "0.1.0"
