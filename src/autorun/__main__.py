import sys

from src.autorun.cli import main

sys.exit(main())
