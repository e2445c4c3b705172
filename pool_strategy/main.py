#!/usr/bin/env python3
"""
Pool strategy simulator
Entry point for ``python -m pool_strategy.main``
"""
from .cli import main

if __name__ == "__main__":
    main()
