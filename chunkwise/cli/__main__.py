"""Allow ``python -m chunkwise.cli`` execution."""

import sys

from chunkwise.cli.ingest import main

sys.exit(main())
