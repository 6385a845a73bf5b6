#!/usr/bin/env python3
"""Scheduled volume ramp daemon."""

from __future__ import annotations

from volsched.cli import run

if __name__ == "__main__":
    run()
