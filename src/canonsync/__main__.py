import sys

from canonsync.cli._dispatcher import main

sys.exit(main())
