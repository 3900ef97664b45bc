"""Ingestion layer.

This package turns raw producer payloads (single records or batches) into
validated :class:`flowrelay.models.TelemetrySample` objects and routes them
to the live table and, while recording, to the replay recorder.
"""

__all__: list[str] = []
