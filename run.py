#!/usr/bin/env python3
"""Run the scribe CLI from a source checkout"""
from scribe.cli import main

if __name__ == '__main__':
    main()
