"""Recording layer.

Start/stop state machine for capturing ingested frames, the catalog of
sealed replays, and their optional on-disk form.
"""
