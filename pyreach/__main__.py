import sys

from pyreach.cli import main

sys.exit(main())
