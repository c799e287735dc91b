import sys

from cachegate.cli import main

sys.exit(main())
