#!/usr/bin/env python3
"""releasebisect - find the release where a regression appeared."""

from releasebisect.cli import main

if __name__ == "__main__":
    main()
