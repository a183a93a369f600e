"""FrameTiming module for rendering performance certification.

This module provides:
- Periodic sampling of ``dumpsys SurfaceFlinger --latency`` with deduplication
- Loop segmentation driven by application lifecycle events
- Per-loop frame time statistics, jank scoring and histograms
- Pass/fail evaluation against certification requirements

Main components:
- frame_core: Sampler, segmenter, transports and the run collector
- metrics: LoopSummary, MetricSummary, Histogram and certification checks
"""
