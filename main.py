#!/usr/bin/env python3
"""
@file main.py
@brief NVD dependency check - Main entry point

This is the main entry point for the dependency check application.
It imports and runs the command-line logic from nvd_check/core/main.py.

@version 1.0
"""

import sys
from nvd_check.core.main import main

if __name__ == "__main__":
    sys.exit(main())
