"""
Test package for the sleep monitor.

Covers:
- Unit tests for classification, scoring, timers, sensing and synthesis
- Scheduler and lifecycle scenarios on a simulated clock
"""
