import sys

from include_cleaner.cli import main

sys.exit(main())
