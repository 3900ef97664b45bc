"""State/store layer.

This package owns the live telemetry table: one entry per entity id,
last-write-wins, with stale entries evicted when the table is read.
"""
