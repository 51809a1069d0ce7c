import sys

from header_watch.interface.watch import main

sys.exit(main())
