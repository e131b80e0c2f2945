"""Version information reported by the /version endpoint."""

import os

__version__ = "1.0.0"

# Injected by the image build; "unknown" for local runs
BUILD_TIME = os.environ.get("IMAGE_CLEANUP_BUILD_TIME", "unknown")
