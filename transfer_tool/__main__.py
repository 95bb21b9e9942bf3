#!/usr/bin/env python3
"""
Entry point for the transfer tool CLI.

Run with: python -m transfer_tool
"""

from .cli import cli

if __name__ == '__main__':
    cli()
