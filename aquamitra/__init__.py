"""
Aquamitra - Consumption Telemetry Package

Turns a stream of per-account water consumption events into
timezone-correct rollups and allocation metrics for household
and jurisdiction dashboards.

DESIGN PRINCIPLES:
1. Every calendar boundary is computed in an explicit timezone
2. Recompute on every request, never cache
3. Fail early at the ingestion boundary
4. Every request is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Aquamitra Team"
