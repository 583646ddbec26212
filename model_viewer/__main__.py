#
# PROJECT: model-viewer-core
# MODULE: model_viewer/__main__.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
