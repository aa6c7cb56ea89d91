#!/usr/bin/env python3
"""godotup entry point"""

import sys

try:
    import aiohttp  # noqa
    import aiofiles  # noqa
    import pydantic  # noqa
    import yaml  # noqa
except ImportError as e:
    print(f"Critical import failed: {e}")
    print("Please run: pip install -e .")
    sys.exit(1)

if __name__ == "__main__":
    from godotup.cli import main

    sys.exit(main())
