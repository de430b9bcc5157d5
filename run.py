"""
Application Runner

This script is the entry point for running the webhook server.
Use: python run.py
"""

import sys

from github_reviewer.cli import main

if __name__ == "__main__":
    sys.exit(main(["server", *sys.argv[1:]]))
