import sys

from botparts.cli import main

sys.exit(main())
