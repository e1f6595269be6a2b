#!/usr/bin/env python3
"""
Main entry point for the vnpayroll CLI application.
"""

from vnpayroll.cli import app

if __name__ == "__main__":
    app()
