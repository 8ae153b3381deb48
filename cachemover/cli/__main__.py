"""
Entry point for running the cachemover CLI as a module.

Usage: python -m cachemover.cli [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
