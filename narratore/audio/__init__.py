"""Audio assembly: ffmpeg helpers, silence, timeline, chapter markers and tagging."""
