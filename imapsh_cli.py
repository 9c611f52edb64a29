#!/usr/bin/env python3
"""
Interactive IMAP shell.

Usage:
  1) Optionally set IMAP_USER/IMAP_PASS in the environment or a .env file
  2) Adjust settings in config.json as needed
  3) Run: python imapsh_cli.py [server]
"""

import sys
from imapsh.cli import main

if __name__ == "__main__":
    sys.exit(main())
