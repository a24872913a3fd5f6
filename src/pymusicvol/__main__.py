import sys

from pymusicvol.cli import main

sys.exit(main())
