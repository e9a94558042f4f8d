import sys

from rateshop.cli import main

sys.exit(main())
