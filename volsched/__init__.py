"""
volsched - Scheduled, eased volume changes for PulseAudio/PipeWire sinks

Declare "volume should be X at time T" for a set of daily times and volsched
moves the sink volume there gradually, finishing exactly at T.

Core modules:
- level: Validated 0-100 volume level
- datetime_utils: Next-occurrence resolution for naive times of day (DST-safe)
- schedule: Ordered targets and the "next invocation" query
- ramp: Eased interpolation between two levels
- audio: pactl-backed volume control
- worker: Drives one invocation to completion
- scheduler: Top-level wait/process loop
- config: TOML schedule loading and environment settings
"""

__version__ = "0.3.0"
