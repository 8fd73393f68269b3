"""Allow `python -m scripts` by running the economy simulation."""

import sys

from scripts.run_economy import main

sys.exit(main())
