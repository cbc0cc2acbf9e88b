import sys

from graphindex.cli import main

sys.exit(main())
