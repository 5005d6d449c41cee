import sys

from cash5.cli import main

sys.exit(main())
