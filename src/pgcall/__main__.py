import sys

from pgcall.cli import main

sys.exit(main())
