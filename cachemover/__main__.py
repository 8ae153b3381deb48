"""
Entry point for running cachemover as a module.

Usage: python -m cachemover [options]
"""

from cachemover.cli.parser import main

if __name__ == "__main__":
    main()
