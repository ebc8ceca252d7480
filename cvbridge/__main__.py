#!/usr/bin/env python3
"""
Entry point for running the bridge as a module.

Usage:
    python -m cvbridge [--osc-port 8000] [--audio-device NAME] [--midi-device NAME]
"""

from cvbridge.bridge import main

main()
