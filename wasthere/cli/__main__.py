"""Allow ``python -m wasthere.cli`` execution."""

import sys

from wasthere.cli.app import main

sys.exit(main())
