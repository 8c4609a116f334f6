import sys

from ffibuild.cli import main

sys.exit(main())
