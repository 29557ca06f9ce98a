#!/usr/bin/env python3
"""
Development launcher for camrec.

- Runs the recorder daemon in the foreground with debug logging (DEV=1)
- Type q + Enter, or press Ctrl-C, to stop all streams
"""

import os
import sys

from camrec import daemon


def main():
    os.environ.setdefault("DEV", "1")
    print("[dev] Running camrec daemon (q + Enter or Ctrl-C to exit)")
    rc = daemon.main()
    print("[dev] Exiting dev mode")
    return rc


if __name__ == "__main__":
    sys.exit(main())
