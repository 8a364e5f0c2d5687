import sys

from realtor_watch.cli import main

sys.exit(main())
