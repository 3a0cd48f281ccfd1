import sys

from audix.cli import main

sys.exit(main())
